"""
Main FastAPI Application for the PIF Submission Pipeline.
Serves the submission and report REST endpoints.
"""
import logging

from fastapi import FastAPI

from pif_app.config import get_config
from pif_app.models import init_db
from pif_app.api.v1 import api_router as v1_router

logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title="PIF Submission Pipeline",
    description="Stage, validate, commit and archive Project Impact Form submissions by site",
    version="1.0.0"
)

app.include_router(v1_router)


@app.on_event("startup")
def startup():
    """Create tables on first start."""
    init_db()
    logger.info(f"Database ready: {get_config().database_url}")


@app.get("/health")
def health():
    config = get_config()
    return {
        "status": "ok",
        "sites": config.site_codes,
        "fleet": config.fleet_site,
    }
