"""
Cost Line Entity - One cost cell of a PIF line.

A cost line belongs to the project line with the same composite key and is
further qualified by scenario and fiscal year.
"""
from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from .record_key import RecordKey, DEFAULT_LINE_NUMBER


class Scenario(str, Enum):
    """Closed set of cost scenarios."""
    TARGET = "Target"
    CLOSINGS = "Closings"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


def fiscal_year_end(value: Union[int, str, date, datetime]) -> date:
    """
    Normalize a fiscal year to its year-end date (12/31/YYYY).

    Accepts a year number, a numeric string or any date inside the year.
    """
    if isinstance(value, datetime):
        return date(value.year, 12, 31)
    if isinstance(value, date):
        return date(value.year, 12, 31)
    return date(int(str(value).strip()), 12, 31)


@dataclass(frozen=True)
class CostLine:
    """
    Immutable cost cell destined for the staging area.

    variance_cents is carried as submitted (requested - baseline at the
    time of submission) and is never recomputed downstream, so archived
    history keeps the figure that was approved.

    scenario is plain text so that invalid values reach validation.
    """

    request_id: Optional[str]
    subject_id: Optional[str]
    scenario: Optional[str]
    fiscal_year: date
    line_number: Optional[int] = DEFAULT_LINE_NUMBER
    requested_cents: Optional[int] = None
    baseline_cents: Optional[int] = None
    variance_cents: Optional[int] = None

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.request_id, self.subject_id, self.line_number)

    @property
    def is_known_scenario(self) -> bool:
        return self.scenario in Scenario.values()

    def to_row(self) -> dict:
        """Column values for a staging insert."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'CostLine':
        """
        Create CostLine from dictionary.

        Variance defaults to requested - baseline when the source omits it.
        """
        requested = data.get('requested_cents')
        baseline = data.get('baseline_cents')
        variance = data.get('variance_cents')
        if variance is None and requested is not None and baseline is not None:
            variance = requested - baseline

        line_number = data.get('line_number')
        return cls(
            request_id=data.get('request_id'),
            subject_id=data.get('subject_id'),
            line_number=DEFAULT_LINE_NUMBER if line_number is None else line_number,
            scenario=data.get('scenario'),
            fiscal_year=fiscal_year_end(data['fiscal_year']),
            requested_cents=requested,
            baseline_cents=baseline,
            variance_cents=variance,
        )
