"""
Domain Exceptions for the PIF Submission Pipeline.

Custom exceptions for:
- Site selection on write paths
- Staging loads
- Transactional promotion and archival failures
- Extract parsing
"""
from typing import Optional


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Site Selection Exceptions
# =============================================================================

class SiteSelectionError(DomainError):
    """Raised when a write operation is attempted without a usable site."""

    def __init__(self, message: str = "A site must be selected before submitting.",
                 code: str = "SITE_REQUIRED"):
        super().__init__(message, code=code)


class UnknownSiteError(SiteSelectionError):
    """Raised when the selected site is not a configured site code."""

    def __init__(self, site: str, known_sites: list):
        message = (
            f"Unknown site '{site}'. "
            f"Select one of: {', '.join(known_sites)}"
        )
        super().__init__(message, code="UNKNOWN_SITE")
        self.site = site
        self.known_sites = known_sites


class ReadOnlySiteError(SiteSelectionError):
    """Raised when the aggregate pseudo-site is used on a write path."""

    def __init__(self, site: str):
        message = (
            f"'{site}' is a read-only view of all sites. "
            f"Select a single site to submit or finalize."
        )
        super().__init__(message, code="READ_ONLY_SITE")
        self.site = site


# =============================================================================
# Pipeline Stage Exceptions
# =============================================================================

class StagingLoadError(DomainError):
    """Raised when the staging area could not be reloaded."""

    def __init__(self, site: str, cause: str):
        message = f"Loading staging data for site '{site}' failed: {cause}"
        super().__init__(message, code="STAGING_LOAD_FAILED")
        self.site = site
        self.cause = cause


class PromotionError(DomainError):
    """Raised when commit-to-inflight rolls back."""

    def __init__(self, site: str, cause: str):
        message = (
            f"Commit to inflight failed for site '{site}'; "
            f"no records were changed. Cause: {cause}"
        )
        super().__init__(message, code="PROMOTION_FAILED")
        self.site = site
        self.cause = cause


class ArchivalError(DomainError):
    """
    Raised when promote-to-approved rolls back.

    The inflight snapshot committed before archival is still valid;
    only the archive step needs to be retried.
    """

    def __init__(self, site: str, cause: str):
        message = (
            f"Archival to approved failed for site '{site}'; "
            f"inflight data is saved, retry the archive step. Cause: {cause}"
        )
        super().__init__(message, code="ARCHIVAL_FAILED")
        self.site = site
        self.cause = cause


# =============================================================================
# Extract Exceptions
# =============================================================================

class ExtractFormatError(DomainError):
    """Raised when a spreadsheet extract cannot be read into records."""

    def __init__(self, source: str, reason: str, row: Optional[int] = None):
        location = f" (row {row})" if row is not None else ""
        message = f"Cannot read extract '{source}'{location}: {reason}"
        super().__init__(message, code="EXTRACT_FORMAT")
        self.source = source
        self.reason = reason
        self.row = row
