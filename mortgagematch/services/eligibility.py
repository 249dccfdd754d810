"""
Eligibility Rule Evaluator
==========================

Decides whether an applicant qualifies for one program.

Rules run in a fixed order and the first failing rule is the reason the
applicant sees. Constraints a program does not set are never enforced,
and a missing income tier never excludes anyone.

Pure functions only: no I/O, no shared state.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Union

from mortgagematch.models.programs import (
    MAX_HOUSEHOLD_TIER,
    WILDCARD,
    ApplicantProfile,
    CreditScoreBand,
    DisqualificationReason,
    EligibilityRule,
    ProgramEligibility,
    QualificationResult,
    StayDuration,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CREDIT SCORE FLOORS
# =============================================================================

# Lowest score each band can stand for. "below-620" sits just under 620 so it
# only satisfies programs whose own minimum is 619 or less.
CREDIT_BAND_FLOORS: Dict[CreditScoreBand, int] = {
    CreditScoreBand.BELOW_620: 619,
    CreditScoreBand.FROM_620: 620,
    CreditScoreBand.FROM_640: 640,
    CreditScoreBand.FROM_660: 660,
    CreditScoreBand.FROM_680: 680,
    CreditScoreBand.FROM_700: 700,
    CreditScoreBand.FROM_720: 720,
    CreditScoreBand.FROM_740: 740,
    CreditScoreBand.BELOW_640: 600,
    CreditScoreBand.FROM_640_TO_699: 640,
    CreditScoreBand.FROM_700_PLUS: 700,
    CreditScoreBand.UNKNOWN: 640,  # Benefit of the doubt
}


def credit_score_floor(value: Union[str, int]) -> int:
    """Representative score for a band, or the score itself if numeric."""
    if isinstance(value, int):
        return value
    return CREDIT_BAND_FLOORS[CreditScoreBand(value)]


def income_limit_for(eligibility: ProgramEligibility, household_size: int) -> Optional[float]:
    """Ceiling for a household, larger households using the top tier. None = unlimited."""
    if eligibility.income_limits is None:
        return None
    tier = min(household_size, MAX_HOUSEHOLD_TIER)
    return eligibility.income_limits.get(tier)


# =============================================================================
# PROGRAM-SPECIFIC OVERRIDES
# =============================================================================

@dataclass(frozen=True)
class ProgramOverride:
    """An extra rule that only applies to one program id"""
    description: str
    violated: Callable[[ApplicantProfile], bool]


def _plans_short_stay(profile: ApplicantProfile) -> bool:
    return profile.planned_stay == StayDuration.LESS_THAN_5.value


FIVE_YEAR_STAY = ProgramOverride("Must plan to stay in the home at least 5 years", _plans_short_stay)

PROGRAM_OVERRIDES: Dict[str, ProgramOverride] = {
    "mchaf": FIVE_YEAR_STAY,
    "hoc-dpa": FIVE_YEAR_STAY,
    "pap": FIVE_YEAR_STAY,
}


# =============================================================================
# RULES
# =============================================================================

def _same(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def _allows(codes: Optional[List[str]], value: str) -> bool:
    """True if a code list does not restrict ``value``."""
    if codes is None or _same(value, WILDCARD):
        return True
    return any(_same(code, WILDCARD) or _same(code, value) for code in codes)


def _failures(
    profile: ApplicantProfile,
    eligibility: ProgramEligibility,
    program_id: str,
) -> Iterator[DisqualificationReason]:
    """Yield every failing rule in canonical order. Callers may stop at the first."""
    if eligibility.first_time_buyer_required and not profile.first_time_buyer:
        yield DisqualificationReason(EligibilityRule.FIRST_TIME_BUYER, "Must be a first-time homebuyer")

    if eligibility.min_credit_score > 0:
        floor = credit_score_floor(profile.credit_score)
        if floor < eligibility.min_credit_score:
            yield DisqualificationReason(
                EligibilityRule.CREDIT_SCORE,
                f"Credit score too low (need {eligibility.min_credit_score}, have {floor})",
            )

    if not _allows(eligibility.counties, profile.county):
        yield DisqualificationReason(EligibilityRule.COUNTY, f"Not available in county '{profile.county}'")
    if not _allows(eligibility.cities, profile.city):
        yield DisqualificationReason(EligibilityRule.CITY, f"Not available in city '{profile.city}'")

    if eligibility.must_live_in_county and not profile.living_in_county:
        yield DisqualificationReason(EligibilityRule.LIVE_IN_COUNTY, "Must live in the county")
    if eligibility.must_work_in_county and not profile.working_in_county:
        yield DisqualificationReason(EligibilityRule.WORK_IN_COUNTY, "Must work in the county")

    if eligibility.must_be_county_employee and not profile.county_employee:
        yield DisqualificationReason(EligibilityRule.COUNTY_EMPLOYEE, "Must be a county employee")

    if eligibility.disallow_current_ownership and profile.currently_own_property:
        yield DisqualificationReason(EligibilityRule.CURRENT_OWNERSHIP, "Cannot currently own property")

    if eligibility.student_debt_required and not profile.student_debt:
        yield DisqualificationReason(EligibilityRule.STUDENT_DEBT, "Must have student debt")

    limit = income_limit_for(eligibility, profile.household_size)
    if limit is None and eligibility.income_limits is not None:
        logger.debug(
            "No income limit for household size %s in program %s; not enforced",
            profile.household_size, program_id,
        )
    if limit is not None and profile.household_income > limit:
        yield DisqualificationReason(
            EligibilityRule.INCOME,
            f"Income too high (limit is ${limit:,.0f}, have ${profile.household_income:,.0f})",
        )

    required = eligibility.required_municipality
    if required and not _same(profile.municipality, required):
        yield DisqualificationReason(EligibilityRule.MUNICIPALITY, f"Must live in {required}")

    override = PROGRAM_OVERRIDES.get(program_id)
    if override and override.violated(profile):
        yield DisqualificationReason(EligibilityRule.PROGRAM_OVERRIDE, override.description)


def evaluate(
    profile: ApplicantProfile,
    eligibility: ProgramEligibility,
    program_id: str,
    exhaustive: bool = False,
) -> QualificationResult:
    """
    Evaluate one applicant against one program's rules.

    By default evaluation stops at the first failing rule, so ``reasons``
    holds at most one entry. With ``exhaustive=True`` every failing rule is
    reported (in the same order); ``qualifies`` is the same either way.
    """
    reasons: List[DisqualificationReason] = []
    for reason in _failures(profile, eligibility, program_id):
        reasons.append(reason)
        if not exhaustive:
            break
    return QualificationResult(program_id=program_id, qualifies=not reasons, reasons=reasons)
