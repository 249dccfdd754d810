"""
Program Catalog Data Model
==========================

Applicant profiles, program eligibility rules, persisted program records
and qualification results.

Every optional eligibility constraint is an explicit field whose "not
enforced" value is spelled out (False, 0 or None). Nothing is inferred from
whether a key happened to be present in the JSON.

The JSON shape (camelCase) is the catalog file format and the HTTP contract.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from mortgagematch.core.errors import ValidationError
from mortgagematch.core.utc import format_iso, parse_iso

WILDCARD = "any"
MAX_HOUSEHOLD_TIER = 5  # Tier 5 means "5 or more people"


# =============================================================================
# ENUMS
# =============================================================================

class ProgramStatus(str, Enum):
    """Where a program is in its lifecycle"""
    ACTIVE = "active"                  # Publicly visible
    PENDING_REVIEW = "pending_review"  # New or changed, awaiting curation
    OUTDATED = "outdated"              # No longer offered


class ProgramSource(str, Enum):
    """How a program entered the catalog"""
    MANUAL_ENTRY = "manual-entry"
    SCRAPED = "scraped"


class ChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGE = "status_change"
    OUTDATED = "outdated"


class CreditScoreBand(str, Enum):
    """Credit score answers accepted from the intake form"""
    BELOW_620 = "below-620"
    FROM_620 = "620-639"
    FROM_640 = "640-659"
    FROM_660 = "660-679"
    FROM_680 = "680-699"
    FROM_700 = "700-719"
    FROM_720 = "720-739"
    FROM_740 = "740-plus"
    # Coarser bands used by the first version of the form
    BELOW_640 = "below-640"
    FROM_640_TO_699 = "640-699"
    FROM_700_PLUS = "700-plus"
    UNKNOWN = "unknown"


class StayDuration(str, Enum):
    """How long the buyer plans to stay in the home"""
    LESS_THAN_5 = "less-than-5"
    FROM_5_TO_10 = "5-10"
    FROM_10_TO_15 = "10-15"
    MORE_THAN_15 = "15-plus"
    UNSURE = "unsure"


class EligibilityRule(str, Enum):
    """Eligibility rules in the order they are evaluated"""
    FIRST_TIME_BUYER = "first_time_buyer"
    CREDIT_SCORE = "credit_score"
    COUNTY = "county"
    CITY = "city"
    LIVE_IN_COUNTY = "live_in_county"
    WORK_IN_COUNTY = "work_in_county"
    COUNTY_EMPLOYEE = "county_employee"
    CURRENT_OWNERSHIP = "current_ownership"
    STUDENT_DEBT = "student_debt"
    INCOME = "income"
    MUNICIPALITY = "municipality"
    PROGRAM_OVERRIDE = "program_override"


def parse_status(value: Union[str, ProgramStatus]) -> ProgramStatus:
    try:
        return ProgramStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ProgramStatus)
        raise ValidationError(f"Invalid status '{value}' (expected one of: {allowed})", field="status")


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _pick(data: Dict[str, Any], *keys: str) -> Any:
    """First present key wins, so new names take precedence over legacy ones."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_bool(value: Any, name: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValidationError(f"'{name}' must be true or false", field=name)


def _as_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"'{name}' must be a number", field=name)
    if math.isnan(value) or math.isinf(value):
        raise ValidationError(f"'{name}' must be a finite number", field=name)
    return value


def _as_code(value: Any, name: str, default: str = WILDCARD) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{name}' must be a non-empty string", field=name)
    return value.strip()


def _as_str_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"'{name}' must be a list of strings", field=name)
    return list(value)


def _as_optional_codes(value: Any, name: str) -> Optional[List[str]]:
    if value is None:
        return None
    return _as_str_list(value, name)


# =============================================================================
# APPLICANT PROFILE
# =============================================================================

@dataclass
class ApplicantProfile:
    """One household's situation at the moment it asks what it qualifies for."""
    county: str = WILDCARD
    city: str = WILDCARD
    first_time_buyer: bool = False
    currently_own_property: bool = False
    credit_score: Union[str, int] = CreditScoreBand.UNKNOWN.value
    household_income: float = 0.0
    household_size: int = 1
    living_in_county: bool = False
    working_in_county: bool = False
    county_employee: bool = False
    student_debt: bool = False
    planned_stay: str = StayDuration.UNSURE.value
    municipality: str = WILDCARD

    def __post_init__(self):
        self.county = _as_code(self.county, "county")
        self.city = _as_code(self.city, "city")
        self.municipality = _as_code(self.municipality, "municipality")
        for name in (
            "first_time_buyer", "currently_own_property", "living_in_county",
            "working_in_county", "county_employee", "student_debt",
        ):
            setattr(self, name, _as_bool(getattr(self, name), name))

        self.household_income = _as_number(self.household_income, "household_income")
        if self.household_income < 0:
            raise ValidationError("Household income cannot be negative", field="household_income")

        if isinstance(self.household_size, bool) or not isinstance(self.household_size, int):
            raise ValidationError("Household size must be a whole number", field="household_size")
        if self.household_size < 1:
            raise ValidationError("Household size must be at least 1", field="household_size")

        self.credit_score = self._normalize_credit_score(self.credit_score)

        try:
            self.planned_stay = StayDuration(self.planned_stay).value
        except ValueError:
            raise ValidationError(f"Unknown planned stay '{self.planned_stay}'", field="planned_stay")

    @staticmethod
    def _normalize_credit_score(value: Any) -> Union[str, int]:
        if value is None:
            return CreditScoreBand.UNKNOWN.value
        if isinstance(value, bool):
            raise ValidationError("Credit score must be a band or a number", field="credit_score")
        if isinstance(value, int):
            if value < 0:
                raise ValidationError("Credit score cannot be negative", field="credit_score")
            return value
        if isinstance(value, str):
            cleaned = value.strip().lower()
            if cleaned.isdigit():
                return int(cleaned)
            try:
                return CreditScoreBand(cleaned).value
            except ValueError:
                pass
        raise ValidationError(f"Unknown credit score band '{value}'", field="credit_score")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplicantProfile":
        """Build from the intake form's JSON. Unrelated keys (name, email...) are ignored."""
        if not isinstance(data, dict):
            raise ValidationError("Applicant profile must be an object")
        values = {
            "county": _pick(data, "county"),
            "city": _pick(data, "city"),
            "first_time_buyer": _pick(data, "firstTimeBuyer"),
            "currently_own_property": _pick(data, "currentlyOwnProperty"),
            "credit_score": _pick(data, "creditScoreBand", "creditScore"),
            "household_income": _pick(data, "householdIncome", "income"),
            "household_size": _pick(data, "householdSize"),
            "living_in_county": _pick(data, "livingInCounty", "liveInCounty"),
            "working_in_county": _pick(data, "workingInCounty", "workInCounty"),
            "county_employee": _pick(data, "countyEmployee"),
            "student_debt": _pick(data, "studentDebt"),
            "planned_stay": _pick(data, "plannedStay", "howLongStay"),
            "municipality": _pick(data, "municipality"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "county": self.county,
            "city": self.city,
            "firstTimeBuyer": self.first_time_buyer,
            "currentlyOwnProperty": self.currently_own_property,
            "creditScoreBand": self.credit_score,
            "householdIncome": self.household_income,
            "householdSize": self.household_size,
            "livingInCounty": self.living_in_county,
            "workingInCounty": self.working_in_county,
            "countyEmployee": self.county_employee,
            "studentDebt": self.student_debt,
            "plannedStay": self.planned_stay,
            "municipality": self.municipality,
        }


# =============================================================================
# PROGRAM ELIGIBILITY
# =============================================================================

@dataclass
class ProgramEligibility:
    """Qualification rules attached to one program."""
    first_time_buyer_required: bool = False
    min_credit_score: int = 0  # 0 = no minimum
    must_live_in_county: bool = False
    must_work_in_county: bool = False
    must_be_county_employee: bool = False
    disallow_current_ownership: bool = False
    student_debt_required: bool = False
    counties: Optional[List[str]] = None  # None = not enforced, ["any"] = everywhere
    cities: Optional[List[str]] = None
    income_limits: Optional[Dict[int, float]] = None  # Household size tier -> annual ceiling
    required_municipality: Optional[str] = None

    def missing_income_tiers(self) -> List[int]:
        """Tiers 1..5 without a ceiling. Empty when no income table is set."""
        if self.income_limits is None:
            return []
        return [tier for tier in range(1, MAX_HOUSEHOLD_TIER + 1) if tier not in self.income_limits]

    @staticmethod
    def _parse_income_limits(value: Any) -> Optional[Dict[int, float]]:
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ValidationError("'incomeLimits' must map household size to a ceiling", field="incomeLimits")
        limits: Dict[int, float] = {}
        for raw_tier, raw_limit in value.items():
            try:
                tier = int(raw_tier)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid household size tier '{raw_tier}'", field="incomeLimits")
            if tier < 1:
                raise ValidationError(f"Invalid household size tier '{raw_tier}'", field="incomeLimits")
            limit = _as_number(raw_limit, f"incomeLimits.{tier}")
            if limit < 0:
                raise ValidationError("Income ceilings cannot be negative", field="incomeLimits")
            limits[tier] = limit
        return limits

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramEligibility":
        """
        Read an eligibility block, new key names first, legacy ones second.

        Legacy catalogs wrote ``currentlyOwnProperty: false`` to mean "the
        applicant must not own property", and municipality restrictions as
        ``gaithersburg: true`` / ``rockville: true``.
        """
        if not isinstance(data, dict):
            raise ValidationError("'eligibility' must be an object", field="eligibility")

        disallow = _pick(data, "disallowCurrentOwnership")
        if disallow is None and "currentlyOwnProperty" in data:
            disallow = data["currentlyOwnProperty"] is False

        municipality = _pick(data, "requiredMunicipality")
        if municipality is None:
            for legacy in ("gaithersburg", "rockville"):
                if data.get(legacy) is True:
                    municipality = legacy
                    break

        min_score = _pick(data, "minCreditScore", "creditScore")
        if min_score is None:
            min_score = 0
        if isinstance(min_score, bool) or not isinstance(min_score, int) or min_score < 0:
            raise ValidationError("'minCreditScore' must be a non-negative integer", field="minCreditScore")

        return cls(
            first_time_buyer_required=_as_bool(_pick(data, "firstTimeBuyerRequired", "firstTimeBuyer"), "firstTimeBuyerRequired"),
            min_credit_score=min_score,
            must_live_in_county=_as_bool(_pick(data, "mustLiveInCounty", "livingInCounty"), "mustLiveInCounty"),
            must_work_in_county=_as_bool(_pick(data, "mustWorkInCounty", "workingInCounty"), "mustWorkInCounty"),
            must_be_county_employee=_as_bool(_pick(data, "mustBeCountyEmployee", "countyEmployee"), "mustBeCountyEmployee"),
            disallow_current_ownership=_as_bool(disallow, "disallowCurrentOwnership"),
            student_debt_required=_as_bool(_pick(data, "studentDebtRequired", "studentDebt"), "studentDebtRequired"),
            counties=_as_optional_codes(data.get("counties"), "counties"),
            cities=_as_optional_codes(data.get("cities"), "cities"),
            income_limits=cls._parse_income_limits(data.get("incomeLimits")),
            required_municipality=_as_code(municipality, "requiredMunicipality") if municipality is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "firstTimeBuyerRequired": self.first_time_buyer_required,
            "minCreditScore": self.min_credit_score,
            "mustLiveInCounty": self.must_live_in_county,
            "mustWorkInCounty": self.must_work_in_county,
            "mustBeCountyEmployee": self.must_be_county_employee,
            "disallowCurrentOwnership": self.disallow_current_ownership,
            "studentDebtRequired": self.student_debt_required,
            "counties": self.counties,
            "cities": self.cities,
            "incomeLimits": (
                {str(tier): limit for tier, limit in sorted(self.income_limits.items())}
                if self.income_limits is not None else None
            ),
            "requiredMunicipality": self.required_municipality,
        }


# =============================================================================
# PROGRAM RECORD
# =============================================================================

@dataclass
class ProgramLink:
    title: str
    url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramLink":
        if not isinstance(data, dict) or not data.get("url"):
            raise ValidationError("Each link needs a 'url'", field="links")
        return cls(title=str(data.get("title") or data["url"]), url=str(data["url"]))

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "url": self.url}


@dataclass
class ChangeEntry:
    """One line of a program's append-only change history"""
    date: datetime
    type: str
    details: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangeEntry":
        return cls(date=parse_iso(data["date"]), type=str(data["type"]), details=str(data.get("details", "")))

    def to_dict(self) -> Dict[str, Any]:
        return {"date": format_iso(self.date), "type": self.type, "details": self.details}


@dataclass
class ProgramMetadata:
    version: int = 1
    change_history: List[ChangeEntry] = field(default_factory=list)

    def record(self, when: datetime, change_type: ChangeType, details: str) -> None:
        """Bump the version and append exactly one history entry."""
        self.version += 1
        self.change_history.append(ChangeEntry(date=when, type=change_type.value, details=details))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProgramMetadata":
        if not data:
            return cls()
        return cls(
            version=int(data.get("version", 1)),
            change_history=[ChangeEntry.from_dict(entry) for entry in data.get("changeHistory", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "changeHistory": [entry.to_dict() for entry in self.change_history],
        }


def _parse_links(value: Any) -> List[ProgramLink]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("'links' must be a list", field="links")
    return [ProgramLink.from_dict(link) for link in value]


def _parse_questions(value: Any) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(q, dict) for q in value):
        raise ValidationError("'additionalQuestions' must be a list of objects", field="additionalQuestions")
    return [dict(q) for q in value]


def _require_text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required field '{key}'", field=key)
    return value


def _require_eligibility(data: Dict[str, Any]) -> ProgramEligibility:
    if data.get("eligibility") is None:
        raise ValidationError("Missing required field 'eligibility'", field="eligibility")
    return ProgramEligibility.from_dict(data["eligibility"])


@dataclass
class ProgramRecord:
    """A full assistance program as persisted in the catalog."""
    id: str
    name: str
    description: str
    eligibility: ProgramEligibility
    savings: str = ""
    benefits: List[str] = field(default_factory=list)
    requirements: List[str] = field(default_factory=list)
    links: List[ProgramLink] = field(default_factory=list)
    additional_questions: List[Dict[str, Any]] = field(default_factory=list)
    status: ProgramStatus = ProgramStatus.ACTIVE
    source: ProgramSource = ProgramSource.MANUAL_ENTRY
    source_id: Optional[str] = None  # Reconciliation source that produced a scraped record
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_validated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    metadata: ProgramMetadata = field(default_factory=ProgramMetadata)

    @property
    def is_manual(self) -> bool:
        return self.source == ProgramSource.MANUAL_ENTRY

    def belongs_to_source(self, source_id: str) -> bool:
        """Scraped by ``source_id``; older records are matched on their id prefix."""
        if self.source_id is not None:
            return self.source_id == source_id
        return self.id.startswith(f"{source_id}-")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramRecord":
        """Load a persisted record. Lifecycle fields fall back to a fresh manual entry."""
        if not isinstance(data, dict):
            raise ValidationError("Program must be an object")
        program_id = data.get("id")
        if not isinstance(program_id, str) or not program_id:
            raise ValidationError("Missing required field 'id'", field="id")
        try:
            source = ProgramSource(data.get("source") or ProgramSource.MANUAL_ENTRY.value)
        except ValueError:
            raise ValidationError(f"Invalid source '{data.get('source')}'", field="source")
        updated_at = parse_iso(data.get("updatedAt") or data.get("lastUpdated"))
        return cls(
            id=program_id,
            name=_require_text(data, "name"),
            description=_require_text(data, "description"),
            eligibility=_require_eligibility(data),
            savings=str(data.get("savings") or ""),
            benefits=_as_str_list(data.get("benefits"), "benefits"),
            requirements=_as_str_list(data.get("requirements"), "requirements"),
            links=_parse_links(data.get("links")),
            additional_questions=_parse_questions(data.get("additionalQuestions")),
            status=parse_status(data.get("status") or ProgramStatus.ACTIVE.value),
            source=source,
            source_id=data.get("sourceId"),
            created_at=parse_iso(data.get("createdAt")) or updated_at,
            updated_at=updated_at,
            last_validated_at=parse_iso(data.get("lastValidatedAt")),
            expires_at=parse_iso(data.get("expiresAt")),
            metadata=ProgramMetadata.from_dict(data.get("metadata")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "savings": self.savings,
            "eligibility": self.eligibility.to_dict(),
            "benefits": list(self.benefits),
            "requirements": list(self.requirements),
            "links": [link.to_dict() for link in self.links],
            "additionalQuestions": [dict(q) for q in self.additional_questions],
            "status": self.status.value,
            "source": self.source.value,
            "sourceId": self.source_id,
            "createdAt": format_iso(self.created_at),
            "updatedAt": format_iso(self.updated_at),
            "lastValidatedAt": format_iso(self.last_validated_at),
            "expiresAt": format_iso(self.expires_at),
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class ObservedProgram:
    """
    A program as seen by a reconciliation source.

    ``savings``, ``links`` and ``additional_questions`` are None when the
    source did not report them, in which case the catalog keeps its values.
    """
    name: str
    description: str
    eligibility: ProgramEligibility
    benefits: List[str] = field(default_factory=list)
    requirements: List[str] = field(default_factory=list)
    id: Optional[str] = None
    savings: Optional[str] = None
    links: Optional[List[ProgramLink]] = None
    additional_questions: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObservedProgram":
        if not isinstance(data, dict):
            raise ValidationError("Observed program must be an object")
        program_id = data.get("id")
        if program_id is not None and (not isinstance(program_id, str) or not program_id.strip()):
            raise ValidationError("Observed program id must be a non-empty string", field="id")
        return cls(
            id=program_id,
            name=_require_text(data, "name"),
            description=_require_text(data, "description"),
            eligibility=_require_eligibility(data),
            benefits=_as_str_list(data.get("benefits"), "benefits"),
            requirements=_as_str_list(data.get("requirements"), "requirements"),
            savings=str(data["savings"]) if data.get("savings") is not None else None,
            links=_parse_links(data["links"]) if data.get("links") is not None else None,
            additional_questions=(
                _parse_questions(data["additionalQuestions"])
                if data.get("additionalQuestions") is not None else None
            ),
        )


# =============================================================================
# QUALIFICATION RESULT
# =============================================================================

@dataclass
class DisqualificationReason:
    rule: EligibilityRule
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"rule": self.rule.value, "message": self.message}


@dataclass
class QualificationResult:
    """Outcome of evaluating one applicant against one program"""
    program_id: str
    qualifies: bool
    reasons: List[DisqualificationReason] = field(default_factory=list)

    @property
    def primary_reason(self) -> Optional[DisqualificationReason]:
        return self.reasons[0] if self.reasons else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "programId": self.program_id,
            "qualifies": self.qualifies,
            "reasons": [reason.to_dict() for reason in self.reasons],
        }
