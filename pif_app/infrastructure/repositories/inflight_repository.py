"""
Inflight Repository - Data access for the per-site working set.

Every write is scoped to one site. Cost rows are owned by their project
row through project_row_id, so two sites holding the same composite key
never touch each other's cost lines.
"""
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from pif_app.models import (
    InflightProject,
    InflightCost,
    StagingProject,
    StagingCost,
    PROJECT_ATTRIBUTE_FIELDS,
    COST_ATTRIBUTE_FIELDS,
)
from pif_app.domain.entities import RecordKey
from .base_repository import BaseRepository


class InflightRepository(BaseRepository[InflightProject]):
    """Repository for inflight project and cost rows."""

    def __init__(self, session: Session):
        super().__init__(session, InflightProject)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_by_site(self, site: Optional[str] = None) -> List[InflightProject]:
        """Projects for one site, or every site when site is None."""
        query = self.session.query(InflightProject)
        if site is not None:
            query = query.filter(InflightProject.site == site)
        return query.order_by(
            InflightProject.site,
            InflightProject.request_id,
            InflightProject.subject_id,
            InflightProject.line_number,
        ).all()

    def get_cost_lines(self, site: Optional[str] = None) -> List[InflightCost]:
        query = self.session.query(InflightCost).join(InflightProject)
        if site is not None:
            query = query.filter(InflightProject.site == site)
        return query.order_by(InflightCost.id).all()

    def get_archive_eligible(self, site: str) -> List[InflightProject]:
        """Projects flagged both retain and include for the site."""
        return self.session.query(InflightProject).filter(
            InflightProject.site == site,
            InflightProject.retain.is_(True),
            InflightProject.include.is_(True),
        ).order_by(InflightProject.id).all()

    # =========================================================================
    # Writes
    # =========================================================================

    def delete_site(self, site: str) -> Tuple[int, int]:
        """
        Delete a site's working set, cost lines first.

        Returns:
            Tuple of (projects deleted, cost lines deleted)
        """
        site_rows = select(InflightProject.id).where(InflightProject.site == site)
        costs = self.session.query(InflightCost).filter(
            InflightCost.project_row_id.in_(site_rows)
        ).delete(synchronize_session='fetch')
        projects = self.session.query(InflightProject).filter(
            InflightProject.site == site
        ).delete(synchronize_session='fetch')
        return projects, costs

    def delete_projects(self, project_ids: List[int]) -> Tuple[int, int]:
        """Delete the given project rows and their cost lines."""
        if not project_ids:
            return 0, 0
        costs = self.session.query(InflightCost).filter(
            InflightCost.project_row_id.in_(project_ids)
        ).delete(synchronize_session='fetch')
        projects = self.session.query(InflightProject).filter(
            InflightProject.id.in_(project_ids)
        ).delete(synchronize_session='fetch')
        return projects, costs

    def insert_from_staging(
        self,
        staged: StagingProject,
        submitted_at: datetime,
    ) -> InflightProject:
        """Copy one staging project row, stamping the submission time."""
        project = InflightProject(
            request_id=staged.request_id,
            subject_id=staged.subject_id,
            line_number=staged.line_number,
            submission_date=submitted_at,
            **{name: getattr(staged, name) for name in PROJECT_ATTRIBUTE_FIELDS},
        )
        self.session.add(project)
        return project

    def insert_cost_lines_from_staging(
        self,
        owners: dict,
        staged_costs: Iterable[StagingCost],
    ) -> int:
        """
        Copy staging cost rows onto their owning inflight projects.

        Args:
            owners: RecordKey -> flushed InflightProject
            staged_costs: Staging cost rows already filtered to those keys

        Returns:
            Number of cost rows added
        """
        added = 0
        for cost in staged_costs:
            owner = owners[RecordKey.of(cost)]
            self.session.add(InflightCost(
                project_row_id=owner.id,
                request_id=cost.request_id,
                subject_id=cost.subject_id,
                line_number=cost.line_number,
                **{name: getattr(cost, name) for name in COST_ATTRIBUTE_FIELDS},
            ))
            added += 1
        return added

    def get_cost_lines_for_projects(self, project_ids: List[int]) -> List[InflightCost]:
        if not project_ids:
            return []
        return self.session.query(InflightCost).filter(
            InflightCost.project_row_id.in_(project_ids)
        ).order_by(InflightCost.id).all()
