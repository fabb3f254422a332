"""
Report API Endpoints - Read-only views over inflight and approved data.

Implements:
- GET /api/v1/reports/inflight - Inflight wide view
- GET /api/v1/reports/approved - Approved wide view
- GET /api/v1/reports/history - Inflight and approved cost history
- GET /api/v1/reports/{view}/export - Excel download of a view

Every view takes a site query parameter; the fleet name returns all sites.
"""
import io
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from pif_app.config import get_config
from pif_app.models import get_db
from pif_app.domain.exceptions import DomainError
from pif_app.modules.reporting import ReportBuilder, export_to_excel, frame_to_records
from .submissions import domain_http_error

router = APIRouter()

VIEWS = ("inflight", "approved", "history")


def _build(view: str, site: Optional[str], year: Optional[int], db: Session):
    site = site or get_config().fleet_site
    builder = ReportBuilder(db)
    try:
        if view == "inflight":
            return site, builder.inflight_wide(site, reporting_year=year)
        if view == "approved":
            return site, builder.approved_wide(site, reporting_year=year)
        return site, builder.all_history(site)
    except DomainError as e:
        raise domain_http_error(e)


@router.get("/inflight", response_model=List[dict], summary="Inflight wide view")
def inflight_view(
    site: Optional[str] = Query(None, description="Site code or fleet name"),
    year: Optional[int] = Query(None, description="Reporting year"),
    db: Session = Depends(get_db),
):
    _, df = _build("inflight", site, year, db)
    return frame_to_records(df)


@router.get("/approved", response_model=List[dict], summary="Approved wide view")
def approved_view(
    site: Optional[str] = Query(None, description="Site code or fleet name"),
    year: Optional[int] = Query(None, description="Reporting year"),
    db: Session = Depends(get_db),
):
    _, df = _build("approved", site, year, db)
    return frame_to_records(df)


@router.get("/history", response_model=List[dict], summary="All history")
def history_view(
    site: Optional[str] = Query(None, description="Site code or fleet name"),
    db: Session = Depends(get_db),
):
    _, df = _build("history", site, None, db)
    return frame_to_records(df)


@router.get("/{view}/export", summary="Export a view to Excel")
def export_view(
    view: str,
    site: Optional[str] = Query(None, description="Site code or fleet name"),
    year: Optional[int] = Query(None, description="Reporting year"),
    db: Session = Depends(get_db),
):
    if view not in VIEWS:
        raise HTTPException(status_code=404, detail=f"Unknown view '{view}'")

    site, df = _build(view, site, year, db)
    buffer = io.BytesIO()
    export_to_excel({f"{view}_{site}": df}, buffer)
    buffer.seek(0)

    filename = f"pif_{view}_{site}.xlsx"
    return StreamingResponse(
        buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
