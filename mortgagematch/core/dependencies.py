"""
FastAPI dependencies for the objects the app lifespan owns.

Usage:
    @router.get("/programs")
    async def list_programs(catalog: ProgramCatalog = Depends(get_catalog)):
        ...
"""

from fastapi import Request

from mortgagematch.services.program_catalog import ProgramCatalog
from mortgagematch.services.program_scraper import ProgramScraper


def get_catalog(request: Request) -> ProgramCatalog:
    return request.app.state.catalog


def get_scraper(request: Request) -> ProgramScraper:
    return request.app.state.scraper
