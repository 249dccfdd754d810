"""
Program Catalog Router
======================

Browse, search and curate the assistance program catalog.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from mortgagematch.core.config import Settings, get_settings
from mortgagematch.core.dependencies import get_catalog
from mortgagematch.models.programs import ApplicantProfile
from mortgagematch.services.program_catalog import ProgramCatalog
from mortgagematch.services.program_search import qualification_report, search

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/programs", tags=["Programs"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class ApplicantProfileRequest(BaseModel):
    """Intake form answers. Legacy form keys (income, liveInCounty...) are accepted too."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    county: Optional[str] = None
    city: Optional[str] = None
    first_time_buyer: Optional[bool] = Field(None, alias="firstTimeBuyer")
    currently_own_property: Optional[bool] = Field(None, alias="currentlyOwnProperty")
    credit_score_band: Optional[Union[int, str]] = Field(None, alias="creditScoreBand")
    household_income: Optional[float] = Field(None, alias="householdIncome")
    household_size: Optional[int] = Field(None, alias="householdSize")
    living_in_county: Optional[bool] = Field(None, alias="livingInCounty")
    working_in_county: Optional[bool] = Field(None, alias="workingInCounty")
    county_employee: Optional[bool] = Field(None, alias="countyEmployee")
    student_debt: Optional[bool] = Field(None, alias="studentDebt")
    planned_stay: Optional[str] = Field(None, alias="plannedStay")
    municipality: Optional[str] = None

    def to_profile(self) -> ApplicantProfile:
        return ApplicantProfile.from_dict(self.model_dump(by_alias=True, exclude_none=True))


class ProgramRequest(BaseModel):
    """Program content for manual create and update. Eligibility keys are checked by the catalog."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    savings: Optional[str] = None
    eligibility: Optional[Dict[str, Any]] = None
    benefits: Optional[List[str]] = None
    requirements: Optional[List[str]] = None
    links: Optional[List[Dict[str, Any]]] = None
    additional_questions: Optional[List[Dict[str, Any]]] = Field(None, alias="additionalQuestions")


class StatusChangeRequest(BaseModel):
    status: str
    reason: Optional[str] = None


# =============================================================================
# QUERIES
# =============================================================================

@router.get("")
async def list_programs(
    include_outdated: bool = Query(False, description="Also list programs no longer offered"),
    include_all: bool = Query(False, description="List every program, pending review included"),
    catalog: ProgramCatalog = Depends(get_catalog),
) -> List[Dict[str, Any]]:
    """List programs. Active ones only unless asked otherwise."""
    records = catalog.list(include_outdated=include_outdated, include_all=include_all)
    return [r.to_dict() for r in records]


@router.get("/stats")
async def catalog_stats(
    catalog: ProgramCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Program counts by status and source, and how many changed recently."""
    return catalog.stats(recent_days=settings.stats_recent_days)


@router.post("/search")
async def search_programs(
    body: ApplicantProfileRequest,
    include_outdated: bool = Query(False),
    include_all: bool = Query(False),
    explain: bool = Query(False, description="Return every program with the reasons it does or does not match"),
    catalog: ProgramCatalog = Depends(get_catalog),
) -> List[Dict[str, Any]]:
    """
    Find the programs an applicant qualifies for.

    With ``explain=true`` every visible program is returned together with
    its qualification result and all failing rules.
    """
    profile = body.to_profile()
    if explain:
        report = qualification_report(catalog, profile, include_outdated, include_all)
        return [match.to_dict() for match in report]
    return [r.to_dict() for r in search(catalog, profile, include_outdated, include_all)]


@router.get("/{program_id}")
async def get_program(
    program_id: str,
    catalog: ProgramCatalog = Depends(get_catalog),
) -> Dict[str, Any]:
    """Full program record, whatever its status."""
    return catalog.require(program_id).to_dict()


# =============================================================================
# CURATION
# =============================================================================

@router.post("", status_code=201)
def create_program(
    body: ProgramRequest,
    catalog: ProgramCatalog = Depends(get_catalog),
) -> Dict[str, Any]:
    """Add a curated program. It is active immediately and immune to scraping."""
    record = catalog.upsert_manual(body.model_dump(by_alias=True, exclude_none=True))
    return record.to_dict()


@router.put("/{program_id}")
def update_program(
    program_id: str,
    body: ProgramRequest,
    catalog: ProgramCatalog = Depends(get_catalog),
) -> Dict[str, Any]:
    """Edit a program's content. Only the fields sent are changed."""
    patch = body.model_dump(by_alias=True, exclude_unset=True)
    record = catalog.update_manual(program_id, patch)
    return record.to_dict()


@router.patch("/{program_id}/status")
def change_status(
    program_id: str,
    body: StatusChangeRequest,
    catalog: ProgramCatalog = Depends(get_catalog),
) -> Dict[str, Any]:
    """Move a program between active, pending_review and outdated."""
    record = catalog.set_status(program_id, body.status, body.reason)
    return record.to_dict()


@router.delete("/{program_id}", status_code=204)
def delete_program(
    program_id: str,
    hard: bool = Query(False, description="Remove the record and its history for good"),
    catalog: ProgramCatalog = Depends(get_catalog),
) -> Response:
    """Retire a program (marked outdated). ``hard=true`` removes it entirely."""
    if hard:
        catalog.hard_delete(program_id)
    else:
        catalog.soft_delete(program_id)
    return Response(status_code=204)
