"""
Health check endpoint.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from mortgagematch.core.config import Settings, get_settings
from mortgagematch.core.dependencies import get_catalog
from mortgagematch.services.program_catalog import ProgramCatalog

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(
    catalog: ProgramCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    return {
        "status": "ok",
        "version": settings.app_version,
        "programs": len(catalog),
    }
