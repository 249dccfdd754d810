"""
Mortgage Match - FastAPI Application
Homebuyer assistance program finder.

Matches an applicant's situation against a curated catalog of Maryland
down payment and mortgage assistance programs, and keeps that catalog in
step with the agencies' own listings.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mortgagematch.core.config import get_settings
from mortgagematch.core.errors import setup_exception_handlers
from mortgagematch.core.logging_config import setup_logging
from mortgagematch.routers import health, locations, programs, reconciliation
from mortgagematch.services.program_catalog import ProgramCatalog
from mortgagematch.services.program_scraper import ProgramScraper
from mortgagematch.services.program_store import JsonFileProgramStore
from mortgagematch.services.sample_programs import seed_catalog

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan (Startup/Shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the catalog and scraper on startup, close the scraper on shutdown.

    Objects passed to ``create_app`` are used as they are.
    """
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_json_format,
        log_file=Path(settings.log_file) if settings.log_file else None,
    )
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    if getattr(app.state, "catalog", None) is None:
        catalog = ProgramCatalog(JsonFileProgramStore(settings.data_file))
        if settings.seed_sample_programs:
            seed_catalog(catalog)
        app.state.catalog = catalog
    if getattr(app.state, "scraper", None) is None:
        app.state.scraper = ProgramScraper.from_settings(settings)

    logger.info("Catalog ready with %s programs", len(app.state.catalog))
    yield

    await app.state.scraper.aclose()
    logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    catalog: Optional[ProgramCatalog] = None,
    scraper: Optional[ProgramScraper] = None,
) -> FastAPI:
    """
    Application factory.
    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.enable_docs else None,
        redoc_url="/api/redoc" if settings.enable_docs else None,
        openapi_url="/api/openapi.json" if settings.enable_docs else None,
    )
    app.state.catalog = catalog
    app.state.scraper = scraper

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(programs.router)
    app.include_router(locations.router)
    app.include_router(reconciliation.router)

    return app


# Create the app instance
app = create_app()


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "mortgagematch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
