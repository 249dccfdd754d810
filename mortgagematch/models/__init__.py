"""
Mortgage Match data model.
"""

from .programs import (
    MAX_HOUSEHOLD_TIER,
    WILDCARD,
    ApplicantProfile,
    ChangeEntry,
    ChangeType,
    CreditScoreBand,
    DisqualificationReason,
    EligibilityRule,
    ObservedProgram,
    ProgramEligibility,
    ProgramLink,
    ProgramMetadata,
    ProgramRecord,
    ProgramSource,
    ProgramStatus,
    QualificationResult,
    StayDuration,
    parse_status,
)

__all__ = [
    "MAX_HOUSEHOLD_TIER",
    "WILDCARD",
    "ApplicantProfile",
    "ChangeEntry",
    "ChangeType",
    "CreditScoreBand",
    "DisqualificationReason",
    "EligibilityRule",
    "ObservedProgram",
    "ProgramEligibility",
    "ProgramLink",
    "ProgramMetadata",
    "ProgramRecord",
    "ProgramSource",
    "ProgramStatus",
    "QualificationResult",
    "StayDuration",
    "parse_status",
]
