"""
Submission Audit Logger - Writes one submission_log row per finalize.

The audit trail is non-critical: a failed write is logged and reported
back to the caller, and never undoes a finalized submission.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from pif_app.config import PIFConfig, get_config
from pif_app.infrastructure.repositories import SubmissionLogRepository

logger = logging.getLogger(__name__)


class SubmissionAuditLogger:
    """Records finalized submissions."""

    def __init__(self, db: Session, config: Optional[PIFConfig] = None):
        self.db = db
        self.config = config or get_config()
        self.repo = SubmissionLogRepository(db)

    def log_submission(
        self,
        site: Optional[str],
        submitted_by: Optional[str] = None,
        source_file: Optional[str] = None,
        record_count: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> bool:
        """
        Write an audit row.

        Returns:
            True when the row was committed, False when the write failed
        """
        try:
            self.repo.create(
                submitted_by=submitted_by or self.config.audit_default_submitter,
                site=site,
                source_file=source_file,
                record_count=record_count,
                notes=notes or self.config.audit_default_notes,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Submission log write failed for site {site}: {e}")
            return False

        logger.info(f"Logged submission of {record_count} records for site {site}")
        return True
