"""
Tests for the submission audit log.
"""
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from pif_app.models import SubmissionLog
from pif_app.domain.services import SubmissionAuditLogger
from pif_app.infrastructure.repositories import SubmissionLogRepository


def test_writes_entry_with_defaults(test_db):
    assert SubmissionAuditLogger(test_db).log_submission("GGN", record_count=7)

    entry = test_db.query(SubmissionLog).one()
    assert entry.submitted_by == "system"
    assert entry.notes == "Submitted via pipeline"
    assert entry.record_count == 7
    assert entry.submission_date is not None


def test_explicit_values_kept(test_db):
    SubmissionAuditLogger(test_db).log_submission(
        "ANO", submitted_by="analyst", source_file="ano.xlsx", notes="Q3 refresh",
    )
    entry = test_db.query(SubmissionLog).one()
    assert (entry.submitted_by, entry.source_file, entry.notes) == ("analyst", "ano.xlsx", "Q3 refresh")


def test_failed_write_returns_false(test_db):
    audit = SubmissionAuditLogger(test_db)
    with patch.object(audit.repo, "create", side_effect=SQLAlchemyError("no table")):
        assert audit.log_submission("ANO") is False
    assert test_db.query(SubmissionLog).count() == 0


def test_unexpected_write_error_returns_false(test_db):
    audit = SubmissionAuditLogger(test_db)
    with patch.object(audit.repo, "create", side_effect=TypeError("bad column")):
        assert audit.log_submission("ANO") is False

    # The session is still usable afterwards
    assert audit.log_submission("GGN") is True
    assert [e.site for e in test_db.query(SubmissionLog).all()] == ["GGN"]


def test_recent_entries_newest_first(test_db):
    audit = SubmissionAuditLogger(test_db)
    for site in ["ANO", "GGN", "RBS"]:
        audit.log_submission(site)

    recent = SubmissionLogRepository(test_db).get_recent(limit=2)
    assert [e.site for e in recent] == ["RBS", "GGN"]
