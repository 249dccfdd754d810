"""
Program Scraper
===============

Reads assistance program listings from the agencies' public web pages and
turns them into observed programs for the reconciler.

Each source page is expected to hold a program listing with one element per
program. A page that cannot be fetched, or that has no listing at all, is
reported as "no data available"; a listing with no programs in it is a real,
empty result.
"""

import functools
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import httpx
from bs4 import BeautifulSoup
from bs4.element import Tag

from mortgagematch.core.config import Settings
from mortgagematch.core.errors import NoDataAvailableError
from mortgagematch.models.programs import ObservedProgram, ProgramEligibility
from mortgagematch.services.reconciler import SourceFetcher

logger = logging.getLogger(__name__)

# "1 person: $75,000, 2 people: $85,000" -> tier, amount pairs
INCOME_LIMIT_PATTERN = re.compile(r"(\d+)[^\d]+\$?([\d,]+)")
CREDIT_SCORE_PATTERN = re.compile(r"\d+")


# =============================================================================
# SOURCES
# =============================================================================

@dataclass(frozen=True)
class ScrapeSource:
    """One agency page and the CSS selectors used to read it."""
    id: str
    name: str
    url: str
    counties: Optional[Tuple[str, ...]] = None  # Counties the agency serves; None = statewide
    listing: str = ".program-list"
    item: str = ".program-item"
    title: str = "h3"
    description: str = ".program-description"
    savings: str = ".program-savings"
    first_time_buyer: str = ".first-time-buyer"
    credit_score: str = ".credit-score"
    income_limits: str = ".income-limits"
    benefit: str = ".benefit-item"
    requirement: str = ".requirement-item"


DEFAULT_SOURCES: Tuple[ScrapeSource, ...] = (
    ScrapeSource(
        id="maryland-mortgage",
        name="Maryland Mortgage Program",
        url="https://mmp.maryland.gov/Pages/Programs.aspx",
    ),
    ScrapeSource(
        id="montgomery-hoc",
        name="Montgomery County HOC",
        url="https://www.hocmc.org/homeownership/homeownership-programs.html",
        counties=("montgomery",),
    ),
    ScrapeSource(
        id="pg-county",
        name="Prince George's County",
        url="https://www.princegeorgescountymd.gov/1014/Pathways-to-Purchase",
        counties=("prince-georges",),
    ),
)


# =============================================================================
# PARSING
# =============================================================================

def parse_income_limits(text: str) -> Optional[Dict[int, float]]:
    """Household size tiers and ceilings from free text. None if nothing is found."""
    limits: Dict[int, float] = {}
    for tier, amount in INCOME_LIMIT_PATTERN.findall(text or ""):
        amount = amount.replace(",", "")
        if not amount or int(tier) < 1:
            continue
        limits[int(tier)] = float(amount)
    return limits or None


def _text(element: Tag, selector: str) -> str:
    found = element.select_one(selector)
    return found.get_text(" ", strip=True) if found else ""


def _texts(element: Tag, selector: str) -> List[str]:
    return [t for t in (e.get_text(" ", strip=True) for e in element.select(selector)) if t]


def parse_program(element: Tag, source: ScrapeSource) -> Optional[ObservedProgram]:
    """Read one listing entry. Entries without a name are skipped."""
    name = _text(element, source.title)
    if not name:
        logger.debug("Skipping %s entry without a name", source.id)
        return None

    score = CREDIT_SCORE_PATTERN.search(_text(element, source.credit_score))
    eligibility = ProgramEligibility(
        first_time_buyer_required="Yes" in _text(element, source.first_time_buyer),
        min_credit_score=int(score.group()) if score else 0,
        counties=list(source.counties) if source.counties else None,
        income_limits=parse_income_limits(_text(element, source.income_limits)),
    )
    return ObservedProgram(
        name=name,
        description=_text(element, source.description) or name,
        eligibility=eligibility,
        savings=_text(element, source.savings) or None,
        benefits=_texts(element, source.benefit),
        requirements=_texts(element, source.requirement),
    )


def parse_programs(html: str, source: ScrapeSource) -> List[ObservedProgram]:
    """
    All programs on a source page.

    Raises NoDataAvailableError when the page has no program listing, which
    usually means the site changed its layout.
    """
    soup = BeautifulSoup(html, "html.parser")
    listing = soup.select_one(source.listing)
    if listing is None:
        raise NoDataAvailableError(source.id, f"No program listing ('{source.listing}') on {source.url}")
    programs = [parse_program(element, source) for element in listing.select(source.item)]
    return [p for p in programs if p is not None]


# =============================================================================
# SCRAPER
# =============================================================================

class ProgramScraper:
    """Fetches and parses every configured source."""

    def __init__(
        self,
        sources: Sequence[ScrapeSource] = DEFAULT_SOURCES,
        timeout: float = 15.0,
        retries: int = 2,
        user_agent: str = "MortgageMatch/1.0",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.sources: Dict[str, ScrapeSource] = {s.id: s for s in sources}
        self.timeout = timeout
        self.retries = retries
        self.user_agent = user_agent
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProgramScraper":
        return cls(
            timeout=settings.scraper_http_timeout,
            retries=settings.scraper_http_retries,
            user_agent=settings.scraper_user_agent,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            )
        return self._client

    async def _get_html(self, source: ScrapeSource) -> str:
        """HTTP GET with retry policy"""
        client = await self._get_client()
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = await client.get(source.url)
                response.raise_for_status()
                return response.text
            except httpx.HTTPError as e:
                logger.warning("GET %s attempt %s/%s failed: %s", source.url, attempt, attempts, e)
                if attempt >= attempts:
                    raise NoDataAvailableError(source.id, f"Could not fetch {source.url}: {e}") from e
        raise NoDataAvailableError(source.id, f"Could not fetch {source.url}")

    async def scrape(self, source: ScrapeSource) -> List[ObservedProgram]:
        logger.info("Scraping %s (%s)", source.name, source.url)
        html = await self._get_html(source)
        programs = parse_programs(html, source)
        logger.info("Found %s programs on %s", len(programs), source.id)
        return programs

    def fetchers(self, source_ids: Optional[Iterable[str]] = None) -> Dict[str, SourceFetcher]:
        """Zero-argument fetch callables keyed by source id, for ``reconcile_sources``."""
        ids = list(source_ids) if source_ids is not None else list(self.sources)
        return {sid: functools.partial(self.scrape, self.sources[sid]) for sid in ids}

    async def aclose(self) -> None:
        """Close HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
