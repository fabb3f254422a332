"""
Domain Layer - Core records and services of the PIF submission pipeline.

This module contains:
- entities/: Immutable records (RecordKey, ProjectRecord, CostLine)
- services/: Pipeline services (StagingStore, StagingValidator, InflightPromoter, ApprovedArchiver)
"""

from .entities.record_key import RecordKey, DEFAULT_LINE_NUMBER, format_record_label
from .entities.project_record import ProjectRecord
from .entities.cost_line import CostLine, Scenario, fiscal_year_end

__all__ = [
    'RecordKey', 'DEFAULT_LINE_NUMBER', 'format_record_label',
    'ProjectRecord',
    'CostLine', 'Scenario', 'fiscal_year_end',
]
