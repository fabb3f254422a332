"""
Shared fixtures: a fresh in-memory database per test and record factories.
"""
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pif_app.models import Base
from pif_app.domain.entities import ProjectRecord, CostLine
from pif_app.domain.services import StagingStore


@pytest.fixture(scope="function")
def test_db():
    """Create a test database with fresh tables for each test."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def make_record():
    """Factory for a valid ProjectRecord; override any field by keyword."""
    def _make(**overrides) -> ProjectRecord:
        values = dict(
            request_id="PIF-001",
            subject_id="P100",
            line_number=1,
            status="Open",
            change_type="Add",
            accounting_treatment="Capital",
            category="Plant",
            segment=1200,
            opco="ELL",
            site="ANO",
            project_name="Cooling Tower Refurb",
            original_target_date="12/31/2026",
            revised_target_date="Annually",
            justification=None,
            prior_year_spend_cents=500000,
            retain=False,
            include=False,
        )
        values.update(overrides)
        return ProjectRecord(**values)
    return _make


@pytest.fixture
def make_cost():
    """Factory for a CostLine on the default record key."""
    def _make(**overrides) -> CostLine:
        values = dict(
            request_id="PIF-001",
            subject_id="P100",
            line_number=1,
            scenario="Target",
            fiscal_year=date(2026, 12, 31),
            requested_cents=150_000_00,
            baseline_cents=100_000_00,
            variance_cents=50_000_00,
        )
        values.update(overrides)
        return CostLine(**values)
    return _make


@pytest.fixture
def stage(test_db):
    """Load rows into staging for a site."""
    def _stage(site, records, cost_lines=()):
        return StagingStore(test_db).load(site, list(records), list(cost_lines))
    return _stage
