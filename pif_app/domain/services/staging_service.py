"""
Staging Store - Disposable landing area for one submission.

Every load replaces the whole staging area, including rows left behind by
other sites, so callers must load exactly one site's extract per cycle.
No uniqueness is enforced here; duplicate detection belongs to validation.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from pif_app.domain.entities import ProjectRecord, CostLine
from pif_app.domain.exceptions import StagingLoadError
from pif_app.infrastructure.repositories import StagingRepository
from .site_service import SiteGuard

logger = logging.getLogger(__name__)


@dataclass
class StagingLoadResult:
    """Result of a staging reload."""
    site: str
    projects_loaded: int
    cost_lines_loaded: int
    projects_replaced: int = 0
    cost_lines_replaced: int = 0

    def to_dict(self) -> dict:
        return {
            'site': self.site,
            'projects_loaded': self.projects_loaded,
            'cost_lines_loaded': self.cost_lines_loaded,
            'projects_replaced': self.projects_replaced,
            'cost_lines_replaced': self.cost_lines_replaced,
        }


@dataclass
class StagingSummary:
    """What is currently staged."""
    projects: int
    cost_lines: int
    projects_by_site: Dict[Optional[str], int] = field(default_factory=dict)


class StagingStore:
    """Truncate-and-reload access to the staging tables."""

    def __init__(self, db: Session, site_guard: Optional[SiteGuard] = None):
        self.db = db
        self.site_guard = site_guard or SiteGuard()
        self.repo = StagingRepository(db)

    def load(
        self,
        site: str,
        records: Iterable[ProjectRecord],
        cost_lines: Iterable[CostLine],
    ) -> StagingLoadResult:
        """
        Replace all staging content with the supplied rows.

        Args:
            site: Declared site of the extract
            records: Project lines to stage
            cost_lines: Cost cells to stage

        Returns:
            StagingLoadResult with loaded and replaced counts

        Raises:
            SiteSelectionError: site missing, unknown or read-only
            StagingLoadError: the reload was rolled back
        """
        site = self.site_guard.require_writable(site)
        logger.info(f"Reloading staging for site {site}")

        try:
            replaced_projects, replaced_costs = self.repo.truncate()
            loaded_projects = self.repo.insert_projects(records)
            loaded_costs = self.repo.insert_cost_lines(cost_lines)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Staging load failed for site {site}: {e}")
            raise StagingLoadError(site, str(e)) from e

        logger.info(
            f"Staged {loaded_projects} projects and {loaded_costs} cost lines "
            f"for site {site} (replaced {replaced_projects} / {replaced_costs})"
        )
        return StagingLoadResult(
            site=site,
            projects_loaded=loaded_projects,
            cost_lines_loaded=loaded_costs,
            projects_replaced=replaced_projects,
            cost_lines_replaced=replaced_costs,
        )

    def counts(self) -> Tuple[int, int]:
        """Staged (projects, cost lines) across all sites."""
        return self.repo.count(), self.repo.count_cost_lines()

    def site_counts(self) -> Dict[Optional[str], int]:
        return self.repo.site_counts()

    def summary(self) -> StagingSummary:
        projects, cost_lines = self.counts()
        return StagingSummary(
            projects=projects,
            cost_lines=cost_lines,
            projects_by_site=self.site_counts(),
        )
