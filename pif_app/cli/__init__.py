"""
CLI Module - Command-line interface for the PIF Submission Pipeline.

Provides commands for:
- Staging and validation
- Snapshot and finalize submissions
- Reports
- Database setup and serving the API
"""

from .commands import cli

__all__ = ['cli']
