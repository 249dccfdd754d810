"""
Mortgage Match - Shared Test Fixtures
Provides a frozen clock, catalogs backed by memory or a temp file, a scraper
served from canned HTML, and an app client wired to them.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Dict

import httpx
import pytest
from httpx import AsyncClient, ASGITransport

# Configure test environment BEFORE importing app
os.environ["SEED_SAMPLE_PROGRAMS"] = "false"
os.environ["LOG_LEVEL"] = "DEBUG"

from mortgagematch.main import create_app
from mortgagematch.services.program_catalog import ProgramCatalog
from mortgagematch.services.program_scraper import DEFAULT_SOURCES, ProgramScraper
from mortgagematch.services.program_store import InMemoryProgramStore, JsonFileProgramStore
from mortgagematch.services.sample_programs import seed_catalog


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


def listing_page(*items: str) -> str:
    return f"<html><body><div class='program-list'>{''.join(items)}</div></body></html>"


def program_item(
    name: str,
    description: str = "Down payment help",
    first_time: str = "Yes",
    credit: str = "Minimum score: 640",
    income: str = "1 person: $100,000, 2 people: $110,000, 3 people: $120,000, 4 people: $130,000, 5 people: $140,000",
    benefits=("Deferred loan",),
    requirements=("Homebuyer education",),
) -> str:
    benefit_html = "".join(f"<li class='benefit-item'>{b}</li>" for b in benefits)
    requirement_html = "".join(f"<li class='requirement-item'>{r}</li>" for r in requirements)
    return (
        "<div class='program-item'>"
        f"<h3>{name}</h3>"
        f"<p class='program-description'>{description}</p>"
        "<p class='program-savings'>Up to $5,000</p>"
        f"<span class='first-time-buyer'>First-time buyer: {first_time}</span>"
        f"<span class='credit-score'>{credit}</span>"
        f"<span class='income-limits'>{income}</span>"
        f"<ul>{benefit_html}</ul><ul>{requirement_html}</ul>"
        "</div>"
    )


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryProgramStore:
    return InMemoryProgramStore()


@pytest.fixture
def catalog(store, clock) -> ProgramCatalog:
    return ProgramCatalog(store, clock=clock)


@pytest.fixture
def json_catalog(tmp_path, clock) -> ProgramCatalog:
    return ProgramCatalog(JsonFileProgramStore(tmp_path / "programs.json"), clock=clock)


@pytest.fixture
def seeded_catalog(catalog) -> ProgramCatalog:
    seed_catalog(catalog)
    return catalog


@pytest.fixture
def program_data() -> Callable[..., Dict]:
    """Factory for a manual program payload; keyword overrides replace top-level keys."""
    def make(**overrides) -> Dict:
        data = {
            "id": "test-program",
            "name": "Test County Downpayment Program",
            "description": "Deferred loan for first-time buyers.",
            "savings": "Up to $10,000",
            "eligibility": {
                "firstTimeBuyerRequired": True,
                "minCreditScore": 640,
                "counties": ["montgomery"],
                "cities": ["any"],
                "incomeLimits": {"1": 109500, "2": 125000, "3": 140500, "4": 156000, "5": 168500},
            },
            "benefits": ["Deferred loan"],
            "requirements": ["Homebuyer education"],
            "links": [{"title": "Apply", "url": "https://example.org/apply"}],
        }
        data.update(overrides)
        return data
    return make


# =============================================================================
# Scraper Fixtures
# =============================================================================

@pytest.fixture
def pages() -> Dict[str, str]:
    """URL -> HTML served to the scraper. Unlisted URLs answer 404."""
    return {}


@pytest.fixture
async def scraper(pages) -> AsyncGenerator[ProgramScraper, None]:
    def handler(request: httpx.Request) -> httpx.Response:
        html = pages.get(str(request.url))
        if html is None:
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, text=html)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    scraper = ProgramScraper(sources=DEFAULT_SOURCES, retries=1, client=http_client)
    yield scraper
    await scraper.aclose()


@pytest.fixture
async def client(seeded_catalog, scraper) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    app = create_app(catalog=seeded_catalog, scraper=scraper)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
