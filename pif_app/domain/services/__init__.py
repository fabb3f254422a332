"""
Domain Services - Staging, validation, promotion, archival and orchestration.
"""

from .site_service import SiteGuard
from .staging_service import StagingStore, StagingLoadResult, StagingSummary
from .validation_service import StagingValidator, ValidationReport, ValidationFinding, Severity
from .promotion_service import InflightPromoter, PromotionResult
from .archive_service import ApprovedArchiver, ArchiveResult
from .audit_service import SubmissionAuditLogger
from .submission_service import SubmissionService, SubmissionResult, SubmissionStage

__all__ = [
    'SiteGuard',
    'StagingStore',
    'StagingLoadResult',
    'StagingSummary',
    'StagingValidator',
    'ValidationReport',
    'ValidationFinding',
    'Severity',
    'InflightPromoter',
    'PromotionResult',
    'ApprovedArchiver',
    'ArchiveResult',
    'SubmissionAuditLogger',
    'SubmissionService',
    'SubmissionResult',
    'SubmissionStage',
]
