"""
Submission Log Repository - Audit trail rows for finalized submissions.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from pif_app.models import SubmissionLog
from .base_repository import BaseRepository


class SubmissionLogRepository(BaseRepository[SubmissionLog]):
    """Repository for submission log entries."""

    def __init__(self, session: Session):
        super().__init__(session, SubmissionLog)

    def create(
        self,
        submitted_by: str,
        site: Optional[str],
        source_file: Optional[str],
        record_count: Optional[int],
        notes: Optional[str],
    ) -> SubmissionLog:
        entry = SubmissionLog(
            submitted_by=submitted_by,
            site=site,
            source_file=source_file,
            record_count=record_count,
            notes=notes,
        )
        self.session.add(entry)
        return entry

    def get_recent(self, limit: int = 20) -> List[SubmissionLog]:
        return self.session.query(SubmissionLog).order_by(
            SubmissionLog.submission_date.desc(), SubmissionLog.id.desc()
        ).limit(limit).all()
