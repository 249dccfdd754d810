"""
Location lookups for the intake form's county and city pickers.
"""

from typing import List

from fastapi import APIRouter, Depends

from mortgagematch.core.dependencies import get_catalog
from mortgagematch.services.program_catalog import ProgramCatalog
from mortgagematch.services.program_search import cities_for_county, counties

router = APIRouter(prefix="/api/counties", tags=["Locations"])


@router.get("")
async def list_counties(catalog: ProgramCatalog = Depends(get_catalog)) -> List[str]:
    """Counties served by active programs, plus "any"."""
    return counties(catalog)


@router.get("/{county}/cities")
async def list_cities(county: str, catalog: ProgramCatalog = Depends(get_catalog)) -> List[str]:
    """Cities named by active programs available in ``county``, plus "any"."""
    return cities_for_county(catalog, county)
