"""
Submission API Endpoints - Staging, validation and the two submit operations.

Implements:
- POST /api/v1/submissions/staging - Replace staging with supplied rows
- GET /api/v1/submissions/staging - Staged row counts per site
- POST /api/v1/submissions/{site}/validate - Run the validation checklist
- POST /api/v1/submissions/{site}/snapshot - Commit staging to inflight
- POST /api/v1/submissions/{site}/finalize - Snapshot, archive and log
- GET /api/v1/submissions/log - Recent submission log entries
"""
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from pif_app.models import get_db
from pif_app.domain.entities import ProjectRecord, CostLine
from pif_app.domain.exceptions import DomainError
from pif_app.domain.services import (
    StagingStore,
    StagingValidator,
    SubmissionService,
    SubmissionResult,
)
from pif_app.infrastructure.repositories import SubmissionLogRepository

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class ProjectRecordIn(BaseModel):
    """One project line of a staging load."""
    request_id: Optional[str] = None
    subject_id: Optional[str] = None
    line_number: Optional[int] = 1
    status: Optional[str] = None
    change_type: Optional[str] = None
    accounting_treatment: Optional[str] = None
    category: Optional[str] = None
    segment: Optional[int] = None
    opco: Optional[str] = None
    site: Optional[str] = None
    strategic_rank: Optional[str] = None
    funding_project: Optional[str] = None
    project_name: Optional[str] = None
    original_target_date: Optional[str] = None
    revised_target_date: Optional[str] = None
    moving_isd_year: Optional[str] = None
    issue_reference: Optional[str] = None
    justification: Optional[str] = None
    prior_year_spend_cents: Optional[int] = None
    retain: bool = False
    include: bool = False


class CostLineIn(BaseModel):
    """One cost cell of a staging load; fiscal_year may be a year or a date."""
    request_id: Optional[str] = None
    subject_id: Optional[str] = None
    line_number: Optional[int] = 1
    scenario: Optional[str] = None
    fiscal_year: Union[int, date]
    requested_cents: Optional[int] = None
    baseline_cents: Optional[int] = None
    variance_cents: Optional[int] = None


class StagingLoadRequest(BaseModel):
    """Request to replace staging content."""
    site: str
    records: List[ProjectRecordIn] = Field(default_factory=list)
    cost_lines: List[CostLineIn] = Field(default_factory=list)


class StagingLoadResponse(BaseModel):
    site: str
    projects_loaded: int
    cost_lines_loaded: int
    projects_replaced: int
    cost_lines_replaced: int


class StagingSummaryResponse(BaseModel):
    projects: int
    cost_lines: int
    projects_by_site: Dict[str, int]


class FindingResponse(BaseModel):
    severity: str
    finding_type: str
    message: str
    record_identifier: str


class ValidationReportResponse(BaseModel):
    site: str
    blocking_count: int
    advisory_count: int
    is_promotable: bool
    findings: List[FindingResponse]


class SnapshotRequest(BaseModel):
    """Options for a snapshot; advisories are accepted unless told otherwise."""
    accept_advisories: bool = True


class FinalizeRequest(SnapshotRequest):
    submitted_by: Optional[str] = None
    source_file: Optional[str] = None
    notes: Optional[str] = None


class SubmissionResponse(BaseModel):
    operation: str
    site: Optional[str]
    stage: Optional[str]
    failed_stage: Optional[str]
    success: bool
    cancelled: bool
    staging: Optional[dict] = None
    validation: Optional[ValidationReportResponse] = None
    promotion: Optional[dict] = None
    archive: Optional[dict] = None
    audit_logged: bool
    errors: List[str]
    warnings: List[str]


class SubmissionLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    submission_date: datetime
    submitted_by: str
    site: Optional[str]
    source_file: Optional[str]
    record_count: Optional[int]
    notes: Optional[str]


# =============================================================================
# Helpers
# =============================================================================

SITE_ERROR_STATUS = {
    "SITE_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "UNKNOWN_SITE": status.HTTP_400_BAD_REQUEST,
    "READ_ONLY_SITE": status.HTTP_403_FORBIDDEN,
}

FAILED_STAGE_STATUS = {
    "site": status.HTTP_400_BAD_REQUEST,
    "stage": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "validate": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "promote": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "archive": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def domain_http_error(error: DomainError) -> HTTPException:
    """Map a domain error onto an HTTP error response."""
    code = SITE_ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail={"code": error.code, "message": error.message})


def _submission_response(result: SubmissionResult) -> JSONResponse:
    code = FAILED_STAGE_STATUS.get(result.failed_stage, status.HTTP_200_OK)
    return JSONResponse(status_code=code, content=result.to_dict())


# =============================================================================
# Endpoints
# =============================================================================

@router.post(
    "/staging",
    response_model=StagingLoadResponse,
    summary="Load staging",
    description="Truncate staging and insert the supplied project and cost rows"
)
def load_staging(request: StagingLoadRequest, db: Session = Depends(get_db)):
    records = [ProjectRecord.from_dict(r.model_dump()) for r in request.records]
    cost_lines = [CostLine.from_dict(c.model_dump()) for c in request.cost_lines]
    try:
        result = StagingStore(db).load(request.site, records, cost_lines)
    except DomainError as e:
        raise domain_http_error(e)
    return result.to_dict()


@router.get("/staging", response_model=StagingSummaryResponse, summary="Staging summary")
def staging_summary(db: Session = Depends(get_db)):
    summary = StagingStore(db).summary()
    return {
        "projects": summary.projects,
        "cost_lines": summary.cost_lines,
        "projects_by_site": {
            site or "": count for site, count in summary.projects_by_site.items()
        },
    }


@router.post(
    "/{site}/validate",
    response_model=ValidationReportResponse,
    summary="Validate staging",
    description="Run the validation checklist for the submitting site without writing anything"
)
def validate_staging(site: str, db: Session = Depends(get_db)):
    try:
        report = StagingValidator(db).validate(site)
    except DomainError as e:
        raise domain_http_error(e)
    return report.to_dict()


@router.post(
    "/{site}/snapshot",
    response_model=SubmissionResponse,
    summary="Save snapshot",
    description="Validate staging and commit the site's rows to inflight"
)
def save_snapshot(
    site: str,
    request: Optional[SnapshotRequest] = None,
    db: Session = Depends(get_db),
):
    request = request or SnapshotRequest()
    result = SubmissionService(db).save_snapshot(
        site,
        confirm_advisories=None if request.accept_advisories else (lambda report: False),
    )
    return _submission_response(result)


@router.post(
    "/{site}/finalize",
    response_model=SubmissionResponse,
    summary="Finalize submission",
    description="Save a snapshot, archive eligible lines to approved and log the submission"
)
def finalize_submission(
    site: str,
    request: Optional[FinalizeRequest] = None,
    db: Session = Depends(get_db),
):
    request = request or FinalizeRequest()
    result = SubmissionService(db).finalize(
        site,
        submitted_by=request.submitted_by,
        source_file=request.source_file,
        notes=request.notes,
        confirm_advisories=None if request.accept_advisories else (lambda report: False),
    )
    return _submission_response(result)


@router.get("/log", response_model=List[SubmissionLogResponse], summary="Recent submissions")
def submission_log(
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return SubmissionLogRepository(db).get_recent(limit)
