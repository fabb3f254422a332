"""
Domain Entities - Immutable records exchanged with the extract reader.
"""

from .record_key import RecordKey, DEFAULT_LINE_NUMBER, format_record_label
from .project_record import ProjectRecord
from .cost_line import CostLine, Scenario, fiscal_year_end

__all__ = [
    'RecordKey', 'DEFAULT_LINE_NUMBER', 'format_record_label',
    'ProjectRecord',
    'CostLine', 'Scenario', 'fiscal_year_end',
]
