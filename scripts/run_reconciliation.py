"""Scrape program sources and merge them into the catalog file. Meant for cron."""
import argparse
import asyncio
import json

from mortgagematch.core.config import get_settings
from mortgagematch.core.logging_config import setup_logging
from mortgagematch.services.program_catalog import ProgramCatalog
from mortgagematch.services.program_scraper import ProgramScraper
from mortgagematch.services.program_store import JsonFileProgramStore
from mortgagematch.services.reconciler import reconcile_sources


async def run(source_ids):
    settings = get_settings()
    setup_logging(level=settings.log_level, json_format=settings.log_json_format)

    catalog = ProgramCatalog(JsonFileProgramStore(settings.data_file))
    scraper = ProgramScraper.from_settings(settings)
    unknown = sorted(set(source_ids or ()) - set(scraper.sources))
    if unknown:
        raise SystemExit(f"Unknown source: {', '.join(unknown)}")
    try:
        summary = await reconcile_sources(catalog, scraper.fetchers(source_ids))
    finally:
        await scraper.aclose()

    print(json.dumps(summary.to_dict(), indent=2))
    return 1 if summary.errors else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--source", action="append", dest="sources", help="Source id (repeatable, default: all)")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(run(args.sources)))
