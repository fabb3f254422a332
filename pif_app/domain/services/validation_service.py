"""
Staging Validation Service - Fixed checklist run against staged rows.

Checks, in report order:
1. Required fields (request id, subject id, change type, site)
2. Range and type sanity (segment, line number)
3. Duplicate composite keys within the submitting site
4. Approved-like statuses require a justification
5. Orphan cost lines
6. Cost cells repeated for the same key, scenario and year
7. Scenario must be Target or Closings
8. Large variance (advisory only)

Blocking findings prevent promotion; advisory findings are surfaced for
review and never block. Validation reads staging and never mutates it.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlalchemy.orm import Session

from pif_app.config import PIFConfig, get_config
from pif_app.domain.entities import format_record_label
from pif_app.infrastructure.repositories import StagingRepository
from pif_app.modules.etl import cents_to_display
from .site_service import SiteGuard

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Finding severity tiers."""
    BLOCKING = "BLOCKING"
    ADVISORY = "ADVISORY"


@dataclass(frozen=True)
class ValidationFinding:
    """One row of the validation report."""
    severity: Severity
    finding_type: str
    message: str
    record_identifier: str

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.BLOCKING

    def to_dict(self) -> dict:
        return {
            'severity': self.severity.value,
            'finding_type': self.finding_type,
            'message': self.message,
            'record_identifier': self.record_identifier,
        }


@dataclass
class ValidationReport:
    """Ordered findings for one staging batch and submitting site."""
    site: str
    findings: List[ValidationFinding] = field(default_factory=list)

    @property
    def blocking_count(self) -> int:
        return sum(1 for f in self.findings if f.is_blocking)

    @property
    def advisory_count(self) -> int:
        return sum(1 for f in self.findings if not f.is_blocking)

    @property
    def is_promotable(self) -> bool:
        """Gate for promotion: no blocking findings."""
        return self.blocking_count == 0

    def of_type(self, finding_type: str) -> List[ValidationFinding]:
        return [f for f in self.findings if f.finding_type == finding_type]

    def to_records(self) -> List[dict]:
        """Rows for a report table, blocking findings first."""
        return [f.to_dict() for f in self.findings]

    def to_dict(self) -> dict:
        return {
            'site': self.site,
            'blocking_count': self.blocking_count,
            'advisory_count': self.advisory_count,
            'is_promotable': self.is_promotable,
            'findings': self.to_records(),
        }


def _row_label(row) -> str:
    return f"Row {row.id}"


def _key_label(row) -> str:
    return format_record_label(row.request_id, row.subject_id, row.line_number)


class StagingValidator:
    """
    Runs the validation checklist for a submitting site.

    Only the duplicate check is scoped to the submitting site; every other
    check covers the whole staging batch.
    """

    def __init__(
        self,
        db: Session,
        config: Optional[PIFConfig] = None,
        site_guard: Optional[SiteGuard] = None,
    ):
        self.db = db
        self.config = config or get_config()
        self.site_guard = site_guard or SiteGuard(self.config)
        self.repo = StagingRepository(db)

    def validate(self, site: str) -> ValidationReport:
        """
        Validate staging content for the submitting site.

        Args:
            site: Submitting site code

        Returns:
            ValidationReport with findings, blocking findings first

        Raises:
            SiteSelectionError: site missing, unknown or read-only
        """
        site = self.site_guard.require_writable(site)
        logger.info(f"Validating staging data for site {site}")

        findings: List[ValidationFinding] = []
        findings.extend(self._check_required_fields(site))
        findings.extend(self._check_ranges())
        findings.extend(self._check_duplicates(site))
        findings.extend(self._check_justification())
        findings.extend(self._check_orphans())
        findings.extend(self._check_duplicate_cost_cells())
        findings.extend(self._check_scenarios())
        findings.extend(self._check_variance())

        # Stable sort keeps check order within each severity
        findings.sort(key=lambda f: 0 if f.is_blocking else 1)
        report = ValidationReport(site=site, findings=findings)

        if report.blocking_count:
            logger.warning(
                f"Validation for site {site} found {report.blocking_count} blocking "
                f"and {report.advisory_count} advisory findings"
            )
        else:
            logger.info(
                f"Validation for site {site} passed with "
                f"{report.advisory_count} advisory findings"
            )
        return report

    # =========================================================================
    # Checks
    # =========================================================================

    def _check_required_fields(self, site: str) -> List[ValidationFinding]:
        findings = []
        for row in self.repo.find_missing_request_id():
            findings.append(ValidationFinding(
                Severity.BLOCKING, "Missing Request ID",
                "Missing required field: PIF ID", _row_label(row),
            ))
        for row in self.repo.find_missing_subject_id():
            findings.append(ValidationFinding(
                Severity.BLOCKING, "Missing Subject ID",
                "Missing required field: Project ID", _row_label(row),
            ))
        for row in self.repo.find_missing_change_type():
            findings.append(ValidationFinding(
                Severity.BLOCKING, "Missing Change Type",
                "Missing required field: Change Type", _key_label(row),
            ))
        for row in self.repo.find_missing_site():
            findings.append(ValidationFinding(
                Severity.BLOCKING, "Missing Site",
                "Missing required field: Site", _key_label(row),
            ))
        for row in self.repo.find_other_site(site):
            findings.append(ValidationFinding(
                Severity.ADVISORY, "Site Mismatch",
                f"Row belongs to site '{row.site}' and will not be submitted for '{site}'",
                _key_label(row),
            ))
        return findings

    def _check_ranges(self) -> List[ValidationFinding]:
        findings = []
        ceiling = self.config.segment_ceiling
        for row in self.repo.find_segment_out_of_range(ceiling):
            findings.append(ValidationFinding(
                Severity.BLOCKING, "Invalid Data Type",
                f"SEG must be an integer between 0 and {ceiling} (found: {row.segment})",
                _key_label(row),
            ))
        for row in self.repo.find_invalid_line_number():
            findings.append(ValidationFinding(
                Severity.BLOCKING, "Invalid Line Number",
                "Line number must be a positive integer (1, 2, 3, etc.)",
                _key_label(row),
            ))
        return findings

    def _check_duplicates(self, site: str) -> List[ValidationFinding]:
        return [
            ValidationFinding(
                Severity.BLOCKING, "Duplicate",
                f"Duplicate PIF+Project+Line combination (appears {count} times)",
                format_record_label(request_id, subject_id, line_number),
            )
            for request_id, subject_id, line_number, count in self.repo.find_duplicate_keys(site)
        ]

    def _check_justification(self) -> List[ValidationFinding]:
        statuses = self.config.approved_statuses
        return [
            ValidationFinding(
                Severity.BLOCKING, "Missing Justification",
                f"{' or '.join(statuses)} status requires justification",
                _key_label(row),
            )
            for row in self.repo.find_missing_justification(statuses)
        ]

    def _check_orphans(self) -> List[ValidationFinding]:
        return [
            ValidationFinding(
                Severity.BLOCKING, "Orphan Cost Record",
                "Cost record exists without matching project record",
                _key_label(row),
            )
            for row in self.repo.find_orphan_cost_lines()
        ]

    def _check_duplicate_cost_cells(self) -> List[ValidationFinding]:
        return [
            ValidationFinding(
                Severity.BLOCKING, "Duplicate Cost Cell",
                f"Duplicate Scenario+Year cost cell (appears {count} times)",
                f"{format_record_label(request_id, subject_id, line_number)}, "
                f"{scenario or 'NULL'}, Year {fiscal_year.year}",
            )
            for request_id, subject_id, line_number, scenario, fiscal_year, count
            in self.repo.find_duplicate_cost_cells()
        ]

    def _check_scenarios(self) -> List[ValidationFinding]:
        scenarios = self.config.scenarios
        allowed = " or ".join(f"'{s}'" for s in scenarios)
        return [
            ValidationFinding(
                Severity.BLOCKING, "Invalid Scenario",
                f"Scenario must be {allowed} (found: '{row.scenario or 'NULL'}')",
                f"{_key_label(row)}, Year {row.fiscal_year.year}",
            )
            for row in self.repo.find_invalid_scenario(scenarios)
        ]

    def _check_variance(self) -> List[ValidationFinding]:
        threshold = self.config.variance_threshold_cents
        return [
            ValidationFinding(
                Severity.ADVISORY, "Variance Threshold Exceeded",
                f"Variance exceeds {cents_to_display(threshold)} threshold: "
                f"{cents_to_display(row.variance_cents)}",
                f"{_key_label(row)}, {row.scenario}, Year {row.fiscal_year.year}",
            )
            for row in self.repo.find_variance_over(threshold)
        ]
