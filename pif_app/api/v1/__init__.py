"""
API v1 - REST endpoints for submissions and reports.

- Submission endpoints (staging load, validate, snapshot, finalize, log)
- Report endpoints (inflight, approved, history, Excel export)
"""
from fastapi import APIRouter

from .submissions import router as submissions_router
from .reports import router as reports_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(submissions_router, prefix="/submissions", tags=["Submissions"])
api_router.include_router(reports_router, prefix="/reports", tags=["Reports"])
