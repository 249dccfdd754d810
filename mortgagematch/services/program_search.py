"""
Program search: the questions the intake form asks of the catalog.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from mortgagematch.models.programs import (
    WILDCARD,
    ApplicantProfile,
    ProgramRecord,
    QualificationResult,
)
from mortgagematch.services.eligibility import evaluate
from mortgagematch.services.program_catalog import ProgramCatalog

logger = logging.getLogger(__name__)


def _codes(values) -> List[str]:
    return [v for v in values or [] if v.strip().lower() != WILDCARD]


def counties(catalog: ProgramCatalog) -> List[str]:
    """County codes used by active programs, "any" first."""
    found = set()
    for record in catalog.list():
        found.update(_codes(record.eligibility.counties))
    return [WILDCARD] + sorted(found)


def cities_for_county(catalog: ProgramCatalog, county: str) -> List[str]:
    """City codes of active programs available in ``county``, "any" first."""
    wanted = county.strip().lower()
    found = set()
    for record in catalog.list():
        program_counties = record.eligibility.counties
        if program_counties is not None and wanted != WILDCARD:
            lowered = {c.strip().lower() for c in program_counties}
            if WILDCARD not in lowered and wanted not in lowered:
                continue
        found.update(_codes(record.eligibility.cities))
    return [WILDCARD] + sorted(found)


@dataclass
class ProgramMatch:
    """One program with the applicant's qualification result."""
    program: ProgramRecord
    result: QualificationResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "program": self.program.to_dict(),
            "qualification": self.result.to_dict(),
        }


def qualification_report(
    catalog: ProgramCatalog,
    profile: ApplicantProfile,
    include_outdated: bool = False,
    include_all: bool = False,
    exhaustive: bool = True,
) -> List[ProgramMatch]:
    """Evaluate every visible program, qualifying or not, in catalog order."""
    records = catalog.list(include_outdated=include_outdated, include_all=include_all)
    return [ProgramMatch(record, evaluate(profile, record.eligibility, record.id, exhaustive)) for record in records]


def search(
    catalog: ProgramCatalog,
    profile: ApplicantProfile,
    include_outdated: bool = False,
    include_all: bool = False,
) -> List[ProgramRecord]:
    """Programs the applicant qualifies for. Active only unless asked otherwise."""
    matches = qualification_report(catalog, profile, include_outdated, include_all, exhaustive=False)
    qualified = [m.program for m in matches if m.result.qualifies]
    logger.debug(
        "Search in %s matched %s of %s programs",
        profile.county, len(qualified), len(matches),
    )
    return qualified
