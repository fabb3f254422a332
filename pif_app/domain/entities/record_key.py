"""
Record Key - Composite identity shared by every pipeline stage.

A PIF detail line is identified by (request_id, subject_id, line_number).
line_number was added after the first release, which only allowed one line
per request + subject pair, so it defaults to 1.
"""
from dataclasses import dataclass
from typing import Any, Optional


DEFAULT_LINE_NUMBER = 1


@dataclass(frozen=True, order=True)
class RecordKey:
    """
    Composite identity of a project line and its cost cells.

    Attributes:
        request_id: PIF identifier of the change request
        subject_id: Project the change request applies to
        line_number: Detail line within the request + subject pair
    """

    request_id: str
    subject_id: str
    line_number: int = DEFAULT_LINE_NUMBER

    @property
    def label(self) -> str:
        """Human-readable identifier used in validation findings."""
        return format_record_label(self.request_id, self.subject_id, self.line_number)

    @classmethod
    def of(cls, row: Any) -> 'RecordKey':
        """Build a key from any object carrying the three key attributes."""
        return cls(row.request_id, row.subject_id, row.line_number)

    def as_filter(self) -> dict:
        """Keyword arguments for filter_by() queries."""
        return {
            'request_id': self.request_id,
            'subject_id': self.subject_id,
            'line_number': self.line_number,
        }


def format_record_label(
    request_id: Optional[str],
    subject_id: Optional[str],
    line_number: Optional[int],
) -> str:
    """Render 'PIF <id>, Project <id>, Line <n>' tolerating missing parts."""
    line = line_number if line_number is not None else "NULL"
    return f"PIF {request_id or ''}, Project {subject_id or ''}, Line {line}"
