"""
Submission Service - Orchestrates the staging -> inflight -> approved pipeline.

Two user-facing operations:
- save_snapshot: stage (optional), validate, commit to inflight
- finalize: the same, then archive eligible lines and write the audit log

Each step commits independently, so a failure leaves every earlier step in
place. Failures are reported as structured results naming the failed stage,
never raised to the caller.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, TYPE_CHECKING

from sqlalchemy.orm import Session

from pif_app.config import PIFConfig, get_config
from pif_app.domain.exceptions import DomainError, SiteSelectionError
from .site_service import SiteGuard
from .staging_service import StagingStore, StagingLoadResult
from .validation_service import StagingValidator, ValidationReport
from .promotion_service import InflightPromoter, PromotionResult
from .archive_service import ApprovedArchiver, ArchiveResult
from .audit_service import SubmissionAuditLogger

if TYPE_CHECKING:
    from pif_app.modules.etl import Extract

logger = logging.getLogger(__name__)

AdvisoryConfirmation = Callable[[ValidationReport], bool]


class SubmissionStage(str, Enum):
    """Last pipeline stage a submission reached."""
    STAGED = "STAGED"
    VALIDATED = "VALIDATED"
    PROMOTED = "PROMOTED"
    ARCHIVED = "ARCHIVED"


@dataclass
class SubmissionResult:
    """Outcome of a save_snapshot or finalize run."""
    operation: str
    site: Optional[str]
    stage: Optional[SubmissionStage] = None
    failed_stage: Optional[str] = None
    success: bool = False
    cancelled: bool = False
    staging: Optional[StagingLoadResult] = None
    validation: Optional[ValidationReport] = None
    promotion: Optional[PromotionResult] = None
    archive: Optional[ArchiveResult] = None
    audit_logged: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'operation': self.operation,
            'site': self.site,
            'stage': self.stage.value if self.stage else None,
            'failed_stage': self.failed_stage,
            'success': self.success,
            'cancelled': self.cancelled,
            'staging': self.staging.to_dict() if self.staging else None,
            'validation': self.validation.to_dict() if self.validation else None,
            'promotion': self.promotion.to_dict() if self.promotion else None,
            'archive': self.archive.to_dict() if self.archive else None,
            'audit_logged': self.audit_logged,
            'errors': self.errors,
            'warnings': self.warnings,
        }


class SubmissionService:
    """
    Drives one submission through the pipeline for a single site.

    Stage order: STAGED -> VALIDATED -> PROMOTED -> ARCHIVED.
    Without an extract, whatever is currently staged is submitted.
    """

    def __init__(self, db: Session, config: Optional[PIFConfig] = None):
        self.db = db
        self.config = config or get_config()
        self.site_guard = SiteGuard(self.config)
        self.staging_store = StagingStore(db, self.site_guard)
        self.validator = StagingValidator(db, self.config, self.site_guard)
        self.promoter = InflightPromoter(db, self.site_guard)
        self.archiver = ApprovedArchiver(db, self.site_guard)
        self.audit_logger = SubmissionAuditLogger(db, self.config)

    def save_snapshot(
        self,
        site: str,
        extract: Optional['Extract'] = None,
        confirm_advisories: Optional[AdvisoryConfirmation] = None,
    ) -> SubmissionResult:
        """
        Validate the staged data and commit it to the site's inflight set.

        Args:
            site: Submitting site code
            extract: Rows to stage first; None submits the current staging
            confirm_advisories: Called when only advisory findings exist;
                returning False cancels before anything is written

        Returns:
            SubmissionResult
        """
        result = SubmissionResult(operation="save_snapshot", site=site)
        self._promote(result, extract, confirm_advisories)
        if result.stage == SubmissionStage.PROMOTED and not result.failed_stage:
            result.success = True
            logger.info(f"Snapshot saved for site {result.site}")
        return result

    def finalize(
        self,
        site: str,
        extract: Optional['Extract'] = None,
        submitted_by: Optional[str] = None,
        source_file: Optional[str] = None,
        notes: Optional[str] = None,
        confirm_advisories: Optional[AdvisoryConfirmation] = None,
    ) -> SubmissionResult:
        """
        Save a snapshot, archive eligible lines and record the submission.

        An archive failure leaves the committed inflight snapshot in place
        and reports failed_stage "archive" so only that step is retried.
        """
        result = SubmissionResult(operation="finalize", site=site)
        self._promote(result, extract, confirm_advisories)
        if result.stage != SubmissionStage.PROMOTED or result.failed_stage:
            return result

        try:
            result.archive = self.archiver.archive(result.site)
        except DomainError as e:
            result.failed_stage = "archive"
            result.errors.append(e.message)
            logger.error(f"Finalize for site {result.site} stopped at archive: {e.message}")
            return result

        result.stage = SubmissionStage.ARCHIVED
        result.success = True

        if source_file is None and extract is not None:
            source_file = extract.source_file
        result.audit_logged = self.audit_logger.log_submission(
            site=result.site,
            submitted_by=submitted_by,
            source_file=source_file,
            record_count=result.promotion.projects_moved,
            notes=notes,
        )
        if not result.audit_logged:
            result.warnings.append("Submission succeeded but the submission log could not be written")

        logger.info(
            f"Finalized site {result.site}: {result.archive.projects_archived} "
            f"projects archived"
        )
        return result

    # =========================================================================
    # Steps
    # =========================================================================

    def _promote(
        self,
        result: SubmissionResult,
        extract: Optional['Extract'],
        confirm_advisories: Optional[AdvisoryConfirmation],
    ) -> None:
        """Run stage, validate and promote, recording progress on result."""
        try:
            result.site = self.site_guard.require_writable(result.site)
        except SiteSelectionError as e:
            result.failed_stage = "site"
            result.errors.append(e.message)
            logger.warning(f"{result.operation} rejected: {e.message}")
            return

        site = result.site
        if extract is not None:
            if extract.site and extract.site.strip().lower() != site.lower():
                result.warnings.append(
                    f"Extract was read for site '{extract.site}' but is submitted for '{site}'"
                )
            try:
                result.staging = self.staging_store.load(site, extract.records, extract.cost_lines)
            except DomainError as e:
                result.failed_stage = "stage"
                result.errors.append(e.message)
                return
        result.stage = SubmissionStage.STAGED

        try:
            report = self.validator.validate(site)
        except DomainError as e:
            result.failed_stage = "validate"
            result.errors.append(e.message)
            return
        except Exception as e:
            result.failed_stage = "validate"
            result.errors.append(f"Validation could not run: {e}")
            logger.error(f"Validation failed for site {site}: {e}")
            return
        result.validation = report
        if not report.is_promotable:
            result.failed_stage = "validate"
            result.errors.append(
                f"Validation found {report.blocking_count} blocking issue(s); "
                f"fix them and resubmit"
            )
            return
        result.stage = SubmissionStage.VALIDATED

        if report.advisory_count:
            if confirm_advisories is not None and not confirm_advisories(report):
                result.cancelled = True
                result.warnings.append(
                    f"Cancelled after {report.advisory_count} advisory finding(s); nothing was saved"
                )
                logger.info(f"{result.operation} for site {site} cancelled at advisory review")
                return
            result.warnings.append(f"{report.advisory_count} advisory finding(s) accepted")

        try:
            result.promotion = self.promoter.commit(site)
        except DomainError as e:
            result.failed_stage = "promote"
            result.errors.append(e.message)
            return
        result.stage = SubmissionStage.PROMOTED
