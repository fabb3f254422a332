"""
Project Record Entity - One PIF line as read from the spreadsheet extract.

Implements:
- Composite identity (request_id, subject_id, line_number)
- Archive eligibility from the retain + include flag pair
- Verbatim text for target dates ("Annually", "Quarterly" are valid values)
"""
from dataclasses import dataclass, asdict
from typing import Optional

from .record_key import RecordKey, DEFAULT_LINE_NUMBER


@dataclass(frozen=True)
class ProjectRecord:
    """
    Immutable project line destined for the staging area.

    No business rules are enforced here: incomplete or out-of-range
    values must survive to staging so validation can report them.

    Attributes:
        request_id: PIF identifier
        subject_id: Project identifier
        line_number: Detail line number (1 when the extract has no column)
        status: Lifecycle status label ("Approved", "Dispositioned", open states)
        change_type: Change-type classification
        accounting_treatment: Accounting classification
        category: Category label
        segment: Numeric segment code
        opco: Operating company
        site: Owning site code
        strategic_rank: Strategic ranking label
        funding_project: Funding project id
        project_name: Project display name
        original_target_date: Original in-service target, as text
        revised_target_date: Revised in-service target, as text
        moving_isd_year: Single-character marker
        issue_reference: Free-text issue reference
        justification: Justification narrative
        prior_year_spend_cents: Prior year spend in cents
        retain: Candidate for permanent archive
        include: Confirmed for this submission
    """

    request_id: Optional[str]
    subject_id: Optional[str]
    line_number: Optional[int] = DEFAULT_LINE_NUMBER
    status: Optional[str] = None
    change_type: Optional[str] = None
    accounting_treatment: Optional[str] = None
    category: Optional[str] = None
    segment: Optional[int] = None
    opco: Optional[str] = None
    site: Optional[str] = None
    strategic_rank: Optional[str] = None
    funding_project: Optional[str] = None
    project_name: Optional[str] = None
    original_target_date: Optional[str] = None
    revised_target_date: Optional[str] = None
    moving_isd_year: Optional[str] = None
    issue_reference: Optional[str] = None
    justification: Optional[str] = None
    prior_year_spend_cents: Optional[int] = None
    retain: bool = False
    include: bool = False

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.request_id, self.subject_id, self.line_number)

    @property
    def is_archive_eligible(self) -> bool:
        """Both routing flags must be set; neither alone is sufficient."""
        return bool(self.retain) and bool(self.include)

    def to_row(self) -> dict:
        """Column values for a staging insert."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'ProjectRecord':
        """
        Create ProjectRecord from dictionary (e.g., from an API payload).

        Unknown keys are ignored; a missing line number becomes 1.
        """
        fields = cls.__dataclass_fields__
        values = {name: data[name] for name in fields if name in data}
        if values.get('line_number') is None:
            values['line_number'] = DEFAULT_LINE_NUMBER
        values.setdefault('request_id', None)
        values.setdefault('subject_id', None)
        return cls(**values)
