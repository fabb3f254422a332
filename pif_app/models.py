"""
Database models and SQLAlchemy setup for the PIF Submission Pipeline.

Three record stages share the same row shapes:
- staging: landing area for one submission, truncated every load
- inflight: current working set, partitioned by site
- approved: permanent archive, upserted by composite key

All monetary values stored as integer cents to avoid float drift.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    create_engine, Column, Integer, String, Boolean,
    DateTime, Date, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship

from pif_app.config import get_config


def _utcnow() -> datetime:
    """Naive UTC timestamp (SQLite stores DateTime without zone)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {}


_config = get_config()
DATABASE_URL = _config.database_url
engine = create_engine(DATABASE_URL, echo=_config.database_echo, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class ProjectAttributesMixin:
    """Non-key columns of a PIF project line, identical across stages."""

    # Status & classification
    status = Column(String(58), nullable=True)
    change_type = Column(String(12), nullable=True)
    accounting_treatment = Column(String(14), nullable=True)
    category = Column(String(26), nullable=True)

    # Organizational
    segment = Column(Integer, nullable=True)
    opco = Column(String(4), nullable=True)
    site = Column(String(4), nullable=True, index=True)
    strategic_rank = Column(String(26), nullable=True)

    # Project linkage
    funding_project = Column(String(10), nullable=True)
    project_name = Column(String(35), nullable=True)

    # Scheduling - free text, may hold tokens like "Annually"
    original_target_date = Column(String(20), nullable=True)
    revised_target_date = Column(String(20), nullable=True)
    moving_isd_year = Column(String(1), nullable=True)

    # Context
    issue_reference = Column(String(20), nullable=True)
    justification = Column(String(192), nullable=True)
    prior_year_spend_cents = Column(Integer, nullable=True)

    # Routing flags
    retain = Column(Boolean, nullable=True)
    include = Column(Boolean, nullable=True)


class CostAttributesMixin:
    """Non-key columns of a cost cell, identical across stages."""

    scenario = Column(String(12), nullable=True)  # Target, Closings
    fiscal_year = Column(Date, nullable=False)  # Fiscal year end: 12/31/YYYY
    requested_cents = Column(Integer, nullable=True)  # User-entered proposal
    baseline_cents = Column(Integer, nullable=True)  # System of record baseline
    variance_cents = Column(Integer, nullable=True)  # requested - baseline, as submitted


# Column names copied verbatim between stages
PROJECT_ATTRIBUTE_FIELDS = (
    "status", "change_type", "accounting_treatment", "category",
    "segment", "opco", "site", "strategic_rank",
    "funding_project", "project_name",
    "original_target_date", "revised_target_date", "moving_isd_year",
    "issue_reference", "justification", "prior_year_spend_cents",
    "retain", "include",
)

COST_ATTRIBUTE_FIELDS = (
    "scenario", "fiscal_year", "requested_cents", "baseline_cents", "variance_cents",
)


# =============================================================================
# Staging Tables
# =============================================================================

class StagingProject(ProjectAttributesMixin, Base):
    """
    Landing row for one project line of the current submission.

    Key columns are nullable so that incomplete rows can be staged and
    reported by validation instead of failing the load.
    """
    __tablename__ = "pif_projects_staging"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String(16), nullable=True)
    subject_id = Column(String(10), nullable=True)
    line_number = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_staging_project_key", "request_id", "subject_id", "line_number"),
    )


class StagingCost(CostAttributesMixin, Base):
    """Landing row for one cost cell of the current submission."""
    __tablename__ = "pif_cost_staging"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String(16), nullable=True)
    subject_id = Column(String(10), nullable=True)
    line_number = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_staging_cost_key", "request_id", "subject_id", "line_number"),
    )


# =============================================================================
# Inflight Tables (current working set)
# =============================================================================

class InflightProject(ProjectAttributesMixin, Base):
    """Working-set project line owned by exactly one site."""
    __tablename__ = "pif_projects_inflight"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String(16), nullable=False)
    subject_id = Column(String(10), nullable=False)
    line_number = Column(Integer, nullable=False, default=1)
    submission_date = Column(DateTime, nullable=False, default=_utcnow)

    cost_lines = relationship(
        "InflightCost",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint('site', 'request_id', 'subject_id', 'line_number',
                         name='uq_inflight_site_key'),
    )


class InflightCost(CostAttributesMixin, Base):
    """Working-set cost cell, owned by its inflight project row."""
    __tablename__ = "pif_cost_inflight"

    id = Column(Integer, primary_key=True, index=True)
    project_row_id = Column(
        Integer,
        ForeignKey("pif_projects_inflight.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    request_id = Column(String(16), nullable=False)
    subject_id = Column(String(10), nullable=False)
    line_number = Column(Integer, nullable=False, default=1)

    project = relationship("InflightProject", back_populates="cost_lines")

    __table_args__ = (
        UniqueConstraint('project_row_id', 'scenario', 'fiscal_year',
                         name='uq_inflight_cost_cell'),
        Index("ix_inflight_cost_lookup", "request_id", "subject_id", "line_number", "scenario", "fiscal_year"),
    )


# =============================================================================
# Approved Tables (permanent archive)
# =============================================================================

class ApprovedProject(ProjectAttributesMixin, Base):
    """
    Archived project line.

    The composite key is unique across all sites; rows are only ever
    inserted or updated in place, never deleted by the pipeline.
    """
    __tablename__ = "pif_projects_approved"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String(16), nullable=False)
    subject_id = Column(String(10), nullable=False)
    line_number = Column(Integer, nullable=False, default=1)
    submission_date = Column(DateTime, nullable=False)
    approval_date = Column(DateTime, nullable=False, default=_utcnow, index=True)

    cost_lines = relationship(
        "ApprovedCost",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint('request_id', 'subject_id', 'line_number',
                         name='uq_approved_key'),
    )


class ApprovedCost(CostAttributesMixin, Base):
    """Archived cost cell; replaced wholesale each time its project is re-archived."""
    __tablename__ = "pif_cost_approved"

    id = Column(Integer, primary_key=True, index=True)
    project_row_id = Column(
        Integer,
        ForeignKey("pif_projects_approved.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    request_id = Column(String(16), nullable=False)
    subject_id = Column(String(10), nullable=False)
    line_number = Column(Integer, nullable=False, default=1)
    approval_date = Column(DateTime, nullable=False, default=_utcnow)

    project = relationship("ApprovedProject", back_populates="cost_lines")

    __table_args__ = (
        UniqueConstraint('project_row_id', 'scenario', 'fiscal_year',
                         name='uq_approved_cost_cell'),
        Index("ix_approved_cost_lookup", "request_id", "subject_id", "line_number", "scenario", "fiscal_year"),
        Index("ix_approved_cost_variance", "variance_cents"),
    )


# =============================================================================
# Audit
# =============================================================================

class SubmissionLog(Base):
    """Audit trail for finalized submissions."""
    __tablename__ = "submission_log"

    id = Column(Integer, primary_key=True, index=True)
    submission_date = Column(DateTime, nullable=False, default=_utcnow)
    submitted_by = Column(String(128), nullable=False)
    site = Column(String(4), nullable=True)
    source_file = Column(String(255), nullable=True)
    record_count = Column(Integer, nullable=True)
    notes = Column(String(500), nullable=True)


def init_db():
    """Initialize the database and create all tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Database session dependency for FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
