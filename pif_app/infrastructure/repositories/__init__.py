"""
Repository implementations for data access layer.
"""
from .base_repository import BaseRepository
from .staging_repository import StagingRepository
from .inflight_repository import InflightRepository
from .approved_repository import ApprovedRepository
from .submission_log_repository import SubmissionLogRepository

__all__ = [
    'BaseRepository',
    'StagingRepository',
    'InflightRepository',
    'ApprovedRepository',
    'SubmissionLogRepository',
]
