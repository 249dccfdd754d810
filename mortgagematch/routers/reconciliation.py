"""
Reconciliation Router
=====================

Trigger a refresh of scraped programs. Nothing here runs on a schedule;
an external scheduler (cron, CI job) calls ``POST /api/reconciliation/run``.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from mortgagematch.core.dependencies import get_catalog, get_scraper
from mortgagematch.services.program_catalog import ProgramCatalog
from mortgagematch.services.program_scraper import ProgramScraper
from mortgagematch.services.reconciler import reconcile_sources

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reconciliation", tags=["Reconciliation"])


@router.get("/sources")
async def list_sources(scraper: ProgramScraper = Depends(get_scraper)) -> List[Dict[str, Any]]:
    """Configured program sources."""
    return [
        {"id": s.id, "name": s.name, "url": s.url, "counties": list(s.counties) if s.counties else None}
        for s in scraper.sources.values()
    ]


@router.post("/run")
async def run_reconciliation(
    source_id: Optional[str] = Query(None, description="Only refresh this source"),
    catalog: ProgramCatalog = Depends(get_catalog),
    scraper: ProgramScraper = Depends(get_scraper),
) -> Dict[str, Any]:
    """
    Scrape and merge every source, or just one.

    A failing source does not stop the others; it is listed under
    ``failedSources`` and counted in ``totals.errors``.
    """
    if source_id is not None and source_id not in scraper.sources:
        raise HTTPException(404, f"Unknown source: {source_id}")
    source_ids = [source_id] if source_id else None
    logger.info("Reconciliation requested for %s", source_id or "all sources")
    summary = await reconcile_sources(catalog, scraper.fetchers(source_ids))
    return summary.to_dict()
