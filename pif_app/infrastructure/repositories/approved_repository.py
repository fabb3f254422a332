"""
Approved Repository - Data access for the permanent archive.

Implements repository pattern for archived PIF lines with:
- Upsert by composite key (never a second row for the same key)
- Wholesale replacement of a key's cost lines
- Cross-site reads for the fleet view
"""
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from pif_app.models import (
    ApprovedProject,
    ApprovedCost,
    InflightProject,
    InflightCost,
    PROJECT_ATTRIBUTE_FIELDS,
    COST_ATTRIBUTE_FIELDS,
)
from pif_app.domain.entities import RecordKey
from .base_repository import BaseRepository


class ApprovedRepository(BaseRepository[ApprovedProject]):
    """
    Repository for approved project and cost rows.

    Rows are only inserted or updated in place; nothing here deletes
    an approved project.
    """

    def __init__(self, session: Session):
        super().__init__(session, ApprovedProject)

    def get_by_key(self, key: RecordKey) -> Optional[ApprovedProject]:
        return self.session.query(ApprovedProject).filter_by(
            **key.as_filter()
        ).one_or_none()

    def get_by_site(self, site: Optional[str] = None) -> List[ApprovedProject]:
        """Archived projects for one site, or every site when site is None."""
        query = self.session.query(ApprovedProject)
        if site is not None:
            query = query.filter(ApprovedProject.site == site)
        return query.order_by(
            ApprovedProject.site,
            ApprovedProject.request_id,
            ApprovedProject.subject_id,
            ApprovedProject.line_number,
        ).all()

    def get_cost_lines(self, site: Optional[str] = None) -> List[ApprovedCost]:
        query = self.session.query(ApprovedCost).join(ApprovedProject)
        if site is not None:
            query = query.filter(ApprovedProject.site == site)
        return query.order_by(ApprovedCost.id).all()

    def upsert_from_inflight(
        self,
        source: InflightProject,
        approved_at: datetime,
    ) -> Tuple[ApprovedProject, bool]:
        """
        Insert or update the archived row for the source's key.

        Every mutable field is overwritten and approval_date restamped.

        Returns:
            Tuple of (approved row, True if a new row was created)
        """
        existing = self.get_by_key(RecordKey.of(source))
        created = existing is None

        if created:
            existing = ApprovedProject(
                request_id=source.request_id,
                subject_id=source.subject_id,
                line_number=source.line_number,
            )
            self.session.add(existing)

        for name in PROJECT_ATTRIBUTE_FIELDS:
            setattr(existing, name, getattr(source, name))
        existing.submission_date = source.submission_date
        existing.approval_date = approved_at

        # Assign the primary key for new rows so cost lines can reference it
        self.session.flush()
        return existing, created

    def replace_cost_lines(
        self,
        project: ApprovedProject,
        cost_lines: Iterable[InflightCost],
        approved_at: datetime,
    ) -> int:
        """
        Replace the archived cost set of one project wholesale.

        Returns:
            Number of cost rows inserted
        """
        self.session.query(ApprovedCost).filter(
            ApprovedCost.project_row_id == project.id
        ).delete(synchronize_session='fetch')

        inserted = 0
        for cost in cost_lines:
            self.session.add(ApprovedCost(
                project_row_id=project.id,
                request_id=project.request_id,
                subject_id=project.subject_id,
                line_number=project.line_number,
                approval_date=approved_at,
                **{name: getattr(cost, name) for name in COST_ATTRIBUTE_FIELDS},
            ))
            inserted += 1
        return inserted
