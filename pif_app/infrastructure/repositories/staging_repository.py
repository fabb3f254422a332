"""
Staging Repository - Data access for the submission landing area.

Staging holds exactly one submission at a time and is not partitioned by
site: every load truncates both staging tables before inserting.
The query helpers below back the validation checklist.
"""
from datetime import date
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import and_, exists, func, or_
from sqlalchemy.orm import Session

from pif_app.models import StagingProject, StagingCost
from pif_app.domain.entities import ProjectRecord, CostLine
from .base_repository import BaseRepository


def _is_blank(column):
    return or_(column.is_(None), func.trim(column) == '')


def _is_present(column):
    return and_(column.isnot(None), func.trim(column) != '')


def _same_key(cost, project):
    return and_(
        cost.request_id == project.request_id,
        cost.subject_id == project.subject_id,
        cost.line_number == project.line_number,
    )


class StagingRepository(BaseRepository[StagingProject]):
    """Repository for staging project and cost rows."""

    def __init__(self, session: Session):
        super().__init__(session, StagingProject)

    # =========================================================================
    # Load
    # =========================================================================

    def truncate(self) -> Tuple[int, int]:
        """
        Remove every staged row, for all sites.

        Returns:
            Tuple of (projects deleted, cost lines deleted)
        """
        costs = self.session.query(StagingCost).delete(synchronize_session='fetch')
        projects = self.session.query(StagingProject).delete(synchronize_session='fetch')
        return projects, costs

    def insert_projects(self, records: Iterable[ProjectRecord]) -> int:
        rows = [StagingProject(**record.to_row()) for record in records]
        self.session.add_all(rows)
        return len(rows)

    def insert_cost_lines(self, cost_lines: Iterable[CostLine]) -> int:
        rows = [StagingCost(**line.to_row()) for line in cost_lines]
        self.session.add_all(rows)
        return len(rows)

    # =========================================================================
    # Reads
    # =========================================================================

    def count_cost_lines(self) -> int:
        return self.session.query(func.count(StagingCost.id)).scalar() or 0

    def site_counts(self) -> dict:
        """Staged project rows per site value (None for blank sites)."""
        rows = self.session.query(
            StagingProject.site, func.count(StagingProject.id)
        ).group_by(StagingProject.site).all()
        return {site: count for site, count in rows}

    def get_projects_for_site(self, site: str) -> List[StagingProject]:
        return self.session.query(StagingProject).filter(
            StagingProject.site == site
        ).order_by(StagingProject.id).all()

    def get_cost_lines_for_site(self, site: str) -> List[StagingCost]:
        """Cost rows whose key matches a staged project of the site."""
        return self.session.query(StagingCost).join(
            StagingProject, _same_key(StagingCost, StagingProject)
        ).filter(
            StagingProject.site == site
        ).order_by(StagingCost.id).all()

    # =========================================================================
    # Validation Queries
    # =========================================================================

    def find_missing_request_id(self) -> List[StagingProject]:
        return self.session.query(StagingProject).filter(
            _is_blank(StagingProject.request_id)
        ).order_by(StagingProject.id).all()

    def find_missing_subject_id(self) -> List[StagingProject]:
        return self.session.query(StagingProject).filter(
            _is_blank(StagingProject.subject_id)
        ).order_by(StagingProject.id).all()

    def find_missing_change_type(self) -> List[StagingProject]:
        """Rows with both ids present but no change type."""
        return self.session.query(StagingProject).filter(
            _is_present(StagingProject.request_id),
            _is_present(StagingProject.subject_id),
            _is_blank(StagingProject.change_type),
        ).order_by(StagingProject.id).all()

    def find_missing_site(self) -> List[StagingProject]:
        return self.session.query(StagingProject).filter(
            _is_blank(StagingProject.site)
        ).order_by(StagingProject.id).all()

    def find_other_site(self, site: str) -> List[StagingProject]:
        """Rows carrying a site other than the submitting one."""
        return self.session.query(StagingProject).filter(
            _is_present(StagingProject.site),
            StagingProject.site != site,
        ).order_by(StagingProject.id).all()

    def find_segment_out_of_range(self, ceiling: int) -> List[StagingProject]:
        return self.session.query(StagingProject).filter(
            StagingProject.segment.isnot(None),
            or_(StagingProject.segment < 0, StagingProject.segment > ceiling),
        ).order_by(StagingProject.id).all()

    def find_invalid_line_number(self) -> List[StagingProject]:
        return self.session.query(StagingProject).filter(
            or_(StagingProject.line_number.is_(None), StagingProject.line_number < 1)
        ).order_by(StagingProject.id).all()

    def find_duplicate_keys(self, site: str) -> List[Tuple[str, str, int, int]]:
        """
        Composite keys staged more than once for one site.

        Rows of other sites are ignored entirely: the same key under two
        different sites is not a duplicate.

        Returns:
            List of (request_id, subject_id, line_number, count)
        """
        rows = self.session.query(
            StagingProject.request_id,
            StagingProject.subject_id,
            StagingProject.line_number,
            func.count(StagingProject.id),
        ).filter(
            StagingProject.site == site,
            StagingProject.request_id.isnot(None),
            StagingProject.subject_id.isnot(None),
        ).group_by(
            StagingProject.request_id,
            StagingProject.subject_id,
            StagingProject.line_number,
        ).having(
            func.count(StagingProject.id) > 1
        ).order_by(
            func.min(StagingProject.id)
        ).all()
        return [tuple(row) for row in rows]

    def find_missing_justification(self, statuses: List[str]) -> List[StagingProject]:
        return self.session.query(StagingProject).filter(
            StagingProject.status.in_(statuses),
            _is_blank(StagingProject.justification),
        ).order_by(StagingProject.id).all()

    def find_orphan_cost_lines(self) -> List[StagingCost]:
        """Cost rows without a staged project sharing their key (any site)."""
        has_project = exists().where(_same_key(StagingCost, StagingProject))
        return self.session.query(StagingCost).filter(
            ~has_project
        ).order_by(StagingCost.id).all()

    def find_duplicate_cost_cells(self) -> List[Tuple[str, str, int, Optional[str], date, int]]:
        """
        Cost cells staged more than once for the same key, scenario and year.

        Returns:
            List of (request_id, subject_id, line_number, scenario, fiscal_year, count)
        """
        rows = self.session.query(
            StagingCost.request_id,
            StagingCost.subject_id,
            StagingCost.line_number,
            StagingCost.scenario,
            StagingCost.fiscal_year,
            func.count(StagingCost.id),
        ).group_by(
            StagingCost.request_id,
            StagingCost.subject_id,
            StagingCost.line_number,
            StagingCost.scenario,
            StagingCost.fiscal_year,
        ).having(
            func.count(StagingCost.id) > 1
        ).order_by(
            func.min(StagingCost.id)
        ).all()
        return [tuple(row) for row in rows]

    def find_invalid_scenario(self, scenarios: List[str]) -> List[StagingCost]:
        return self.session.query(StagingCost).filter(
            or_(StagingCost.scenario.is_(None), ~StagingCost.scenario.in_(scenarios))
        ).order_by(StagingCost.id).all()

    def find_variance_over(self, threshold_cents: int) -> List[StagingCost]:
        """Cost rows whose variance magnitude exceeds the threshold."""
        return self.session.query(StagingCost).filter(
            StagingCost.variance_cents.isnot(None),
            func.abs(StagingCost.variance_cents) > threshold_cents,
        ).order_by(StagingCost.id).all()
