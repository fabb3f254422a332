"""
Infrastructure Layer - Repository implementations over the SQLAlchemy models.
"""

from .repositories import (
    BaseRepository,
    StagingRepository,
    InflightRepository,
    ApprovedRepository,
    SubmissionLogRepository,
)

__all__ = [
    'BaseRepository',
    'StagingRepository',
    'InflightRepository',
    'ApprovedRepository',
    'SubmissionLogRepository',
]
