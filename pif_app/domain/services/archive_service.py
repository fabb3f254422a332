"""
Approved Archiver - Promote-to-approved for one site.

Eligible inflight lines (retain and include both set) are upserted into the
permanent archive by composite key, their archived cost lines replaced
wholesale, and the lines removed from inflight. Lines that are not eligible
stay in inflight for the next cycle.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from pif_app.domain.exceptions import ArchivalError
from pif_app.infrastructure.repositories import InflightRepository, ApprovedRepository
from pif_app.models import _utcnow
from .site_service import SiteGuard

logger = logging.getLogger(__name__)


@dataclass
class ArchiveResult:
    """Counts written by one promote-to-approved."""
    site: str
    projects_archived: int
    cost_lines_archived: int
    approved_at: datetime
    projects_created: int = 0
    projects_updated: int = 0

    def to_dict(self) -> dict:
        return {
            'site': self.site,
            'projects_archived': self.projects_archived,
            'cost_lines_archived': self.cost_lines_archived,
            'approved_at': self.approved_at.isoformat(),
            'projects_created': self.projects_created,
            'projects_updated': self.projects_updated,
        }


class ApprovedArchiver:
    """Moves a site's archive-eligible inflight lines into approved."""

    def __init__(self, db: Session, site_guard: Optional[SiteGuard] = None):
        self.db = db
        self.site_guard = site_guard or SiteGuard()
        self.inflight_repo = InflightRepository(db)
        self.approved_repo = ApprovedRepository(db)

    def archive(self, site: str) -> ArchiveResult:
        """
        Archive the site's eligible inflight lines.

        Re-archiving a key updates the existing approved row in place, so the
        archive never holds two rows for one key.

        Raises:
            SiteSelectionError: site missing, unknown or read-only
            ArchivalError: the transaction was rolled back, nothing changed
        """
        site = self.site_guard.require_writable(site)
        approved_at = _utcnow()
        logger.info(f"Archiving eligible inflight lines for site {site}")

        created = updated = cost_lines = 0
        try:
            eligible = self.inflight_repo.get_archive_eligible(site)
            eligible_ids = [project.id for project in eligible]

            for project in eligible:
                approved, is_new = self.approved_repo.upsert_from_inflight(project, approved_at)
                if is_new:
                    created += 1
                else:
                    updated += 1
                cost_lines += self.approved_repo.replace_cost_lines(
                    approved,
                    self.inflight_repo.get_cost_lines_for_projects([project.id]),
                    approved_at,
                )

            self.db.flush()
            self.inflight_repo.delete_projects(eligible_ids)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Archival failed for site {site}, rolled back: {e}")
            raise ArchivalError(site, str(e)) from e

        logger.info(
            f"Archived {created + updated} projects ({created} new, {updated} updated) "
            f"and {cost_lines} cost lines for site {site}"
        )
        return ArchiveResult(
            site=site,
            projects_archived=created + updated,
            cost_lines_archived=cost_lines,
            approved_at=approved_at,
            projects_created=created,
            projects_updated=updated,
        )
