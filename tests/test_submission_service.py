"""
Tests for the submission orchestrator: save snapshot and finalize.
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from pif_app.models import (
    StagingProject,
    InflightProject,
    ApprovedProject,
    SubmissionLog,
)
from pif_app.domain.exceptions import ArchivalError, PromotionError
from pif_app.domain.services import SubmissionService, SubmissionStage
from pif_app.modules.etl import Extract


@pytest.fixture
def service(test_db):
    return SubmissionService(test_db)


@pytest.fixture
def extract(make_record, make_cost):
    return Extract(
        site="ANO",
        records=[
            make_record(retain=True, include=True, status="Approved", justification="Approved by board"),
            make_record(subject_id="P200"),
        ],
        cost_lines=[make_cost(), make_cost(subject_id="P200")],
        source_file="ano_pif.xlsx",
    )


class TestSaveSnapshot:

    def test_stages_validates_and_promotes(self, test_db, service, extract):
        result = service.save_snapshot("ANO", extract)

        assert result.success
        assert result.stage == SubmissionStage.PROMOTED
        assert result.failed_stage is None
        assert result.staging.projects_loaded == 2
        assert result.validation.is_promotable
        assert result.promotion.projects_moved == 2
        assert test_db.query(InflightProject).count() == 2
        assert test_db.query(ApprovedProject).count() == 0

    def test_submits_current_staging_without_extract(self, test_db, stage, service, make_record):
        stage("ANO", [make_record()])
        result = service.save_snapshot("ano")

        assert result.success
        assert result.site == "ANO"
        assert result.staging is None
        assert test_db.query(InflightProject).count() == 1

    def test_blocking_findings_stop_before_promotion(self, test_db, service, make_record):
        bad = Extract(site="ANO", records=[make_record(change_type=None)])
        result = service.save_snapshot("ANO", bad)

        assert not result.success
        assert result.stage == SubmissionStage.STAGED
        assert result.failed_stage == "validate"
        assert result.validation.blocking_count == 1
        assert "1 blocking issue(s)" in result.errors[0]
        # Staged rows stay for correction
        assert test_db.query(StagingProject).count() == 1
        assert test_db.query(InflightProject).count() == 0

    def test_advisories_accepted_by_default(self, test_db, service, make_record, make_cost):
        advisory = Extract(site="ANO", records=[make_record()], cost_lines=[make_cost(variance_cents=-200_000_000)])
        result = service.save_snapshot("ANO", advisory)

        assert result.success
        assert result.warnings == ["1 advisory finding(s) accepted"]

    def test_declined_advisories_cancel_without_writes(self, test_db, service, make_record, make_cost):
        advisory = Extract(site="ANO", records=[make_record()], cost_lines=[make_cost(variance_cents=-200_000_000)])
        seen = []

        def decline(report):
            seen.append(report.advisory_count)
            return False

        result = service.save_snapshot("ANO", advisory, confirm_advisories=decline)

        assert seen == [1]
        assert result.cancelled
        assert not result.success
        assert result.failed_stage is None
        assert result.stage == SubmissionStage.VALIDATED
        assert test_db.query(InflightProject).count() == 0

    def test_confirmation_not_asked_without_advisories(self, service, extract):
        def fail(report):
            raise AssertionError("should not be asked")

        assert service.save_snapshot("ANO", extract, confirm_advisories=fail).success

    @pytest.mark.parametrize("site", ["Fleet", "", None, "XYZ"])
    def test_unusable_site_rejected_before_staging(self, test_db, service, extract, site):
        result = service.save_snapshot(site, extract)

        assert result.failed_stage == "site"
        assert result.stage is None
        assert not result.success
        assert test_db.query(StagingProject).count() == 0

    def test_extract_for_other_site_warns(self, service, make_record):
        other = Extract(site="GGN", records=[make_record()])
        result = service.save_snapshot("ANO", other)

        assert result.success
        assert "read for site 'GGN'" in result.warnings[0]

    def test_promotion_failure_reported(self, test_db, service, extract):
        with patch.object(service.promoter, "commit", side_effect=PromotionError("ANO", "deadlock")):
            result = service.save_snapshot("ANO", extract)

        assert result.failed_stage == "promote"
        assert result.stage == SubmissionStage.VALIDATED
        assert "deadlock" in result.errors[0]

    def test_validation_database_error_reported(self, test_db, service, extract):
        with patch.object(
            service.validator.repo,
            "find_missing_request_id",
            side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
        ):
            result = service.save_snapshot("ANO", extract)

        assert not result.success
        assert result.failed_stage == "validate"
        assert result.stage == SubmissionStage.STAGED
        assert result.validation is None
        assert "database is locked" in result.errors[0]
        assert test_db.query(InflightProject).count() == 0

    def test_duplicate_cost_cell_stops_before_promotion(self, test_db, service, make_record, make_cost):
        result = service.save_snapshot("ANO", Extract(
            site="ANO", records=[make_record()], cost_lines=[make_cost(), make_cost()],
        ))

        assert result.failed_stage == "validate"
        assert [f.finding_type for f in result.validation.findings] == ["Duplicate Cost Cell"]
        assert test_db.query(InflightProject).count() == 0


class TestFinalize:

    def test_full_pipeline(self, test_db, service, extract):
        result = service.finalize("ANO", extract, submitted_by="jdoe")

        assert result.success
        assert result.stage == SubmissionStage.ARCHIVED
        assert result.archive.projects_archived == 1
        assert result.audit_logged

        assert [p.subject_id for p in test_db.query(ApprovedProject).all()] == ["P100"]
        assert [p.subject_id for p in test_db.query(InflightProject).all()] == ["P200"]

        entry = test_db.query(SubmissionLog).one()
        assert entry.submitted_by == "jdoe"
        assert entry.site == "ANO"
        assert entry.source_file == "ano_pif.xlsx"
        assert entry.record_count == 2
        assert entry.notes == "Submitted via pipeline"

    def test_to_dict(self, service, extract):
        data = service.finalize("ANO", extract).to_dict()

        assert data["operation"] == "finalize"
        assert data["stage"] == "ARCHIVED"
        assert data["archive"]["projects_archived"] == 1
        assert data["validation"]["findings"] == []

    def test_blocking_findings_skip_archive_and_log(self, test_db, service, make_record):
        bad = Extract(site="ANO", records=[make_record(), make_record()])
        result = service.finalize("ANO", bad)

        assert result.failed_stage == "validate"
        assert result.archive is None
        assert test_db.query(SubmissionLog).count() == 0

    def test_archive_failure_keeps_inflight_snapshot(self, test_db, service, extract):
        with patch.object(service.archiver, "archive", side_effect=ArchivalError("ANO", "boom")):
            result = service.finalize("ANO", extract)

        assert not result.success
        assert result.failed_stage == "archive"
        assert result.stage == SubmissionStage.PROMOTED
        assert "retry the archive step" in result.errors[0]
        assert test_db.query(InflightProject).count() == 2
        assert test_db.query(ApprovedProject).count() == 0
        assert test_db.query(SubmissionLog).count() == 0

    def test_audit_failure_does_not_undo_finalize(self, test_db, service, extract):
        with patch.object(service.audit_logger.repo, "create", side_effect=SQLAlchemyError("read-only")):
            result = service.finalize("ANO", extract)

        assert result.success
        assert not result.audit_logged
        assert result.warnings[-1] == "Submission succeeded but the submission log could not be written"
        assert test_db.query(ApprovedProject).count() == 1

    def test_unexpected_audit_error_does_not_fail_finalize(self, test_db, service, extract):
        with patch.object(service.audit_logger.repo, "create", side_effect=RuntimeError("log unavailable")):
            result = service.finalize("ANO", extract)

        assert result.success
        assert result.stage == SubmissionStage.ARCHIVED
        assert not result.audit_logged
        assert test_db.query(ApprovedProject).count() == 1
        assert test_db.query(SubmissionLog).count() == 0

    def test_fleet_finalize_rejected(self, test_db, service, extract):
        result = service.finalize("Fleet", extract)

        assert result.failed_stage == "site"
        assert test_db.query(SubmissionLog).count() == 0
