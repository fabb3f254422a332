"""
Inflight Promoter - Commit-to-inflight for one site.

Replaces the site's entire inflight working set with the staged rows that
carry the site's code, in a single transaction. Rows of other sites, in
staging or inflight, are never touched.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from pif_app.domain.entities import RecordKey
from pif_app.domain.exceptions import PromotionError
from pif_app.infrastructure.repositories import StagingRepository, InflightRepository
from pif_app.models import _utcnow
from .site_service import SiteGuard

logger = logging.getLogger(__name__)


@dataclass
class PromotionResult:
    """Counts written by one commit-to-inflight."""
    site: str
    projects_moved: int
    cost_lines_moved: int
    submitted_at: datetime
    projects_replaced: int = 0
    cost_lines_replaced: int = 0

    def to_dict(self) -> dict:
        return {
            'site': self.site,
            'projects_moved': self.projects_moved,
            'cost_lines_moved': self.cost_lines_moved,
            'submitted_at': self.submitted_at.isoformat(),
            'projects_replaced': self.projects_replaced,
            'cost_lines_replaced': self.cost_lines_replaced,
        }


class InflightPromoter:
    """Moves a validated site's staging rows into inflight."""

    def __init__(self, db: Session, site_guard: Optional[SiteGuard] = None):
        self.db = db
        self.site_guard = site_guard or SiteGuard()
        self.staging_repo = StagingRepository(db)
        self.inflight_repo = InflightRepository(db)

    def commit(self, site: str) -> PromotionResult:
        """
        Replace the site's inflight rows with its staged rows.

        Callers must only invoke this after a validation run with no
        blocking findings.

        Raises:
            SiteSelectionError: site missing, unknown or read-only
            PromotionError: the transaction was rolled back, nothing changed
        """
        site = self.site_guard.require_writable(site)
        submitted_at = _utcnow()
        logger.info(f"Committing staging to inflight for site {site}")

        try:
            replaced_projects, replaced_costs = self.inflight_repo.delete_site(site)

            owners = {}
            for staged in self.staging_repo.get_projects_for_site(site):
                owners[RecordKey.of(staged)] = self.inflight_repo.insert_from_staging(
                    staged, submitted_at
                )
            # Assign ids so cost rows can reference their owners
            self.db.flush()

            moved_costs = self.inflight_repo.insert_cost_lines_from_staging(
                owners, self.staging_repo.get_cost_lines_for_site(site)
            )
            self.db.flush()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Commit to inflight failed for site {site}, rolled back: {e}")
            raise PromotionError(site, str(e)) from e

        logger.info(
            f"Committed {len(owners)} projects and {moved_costs} cost lines to "
            f"inflight for site {site} (replaced {replaced_projects} / {replaced_costs})"
        )
        return PromotionResult(
            site=site,
            projects_moved=len(owners),
            cost_lines_moved=moved_costs,
            submitted_at=submitted_at,
            projects_replaced=replaced_projects,
            cost_lines_replaced=replaced_costs,
        )
