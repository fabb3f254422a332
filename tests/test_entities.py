"""
Unit tests for the identity model: RecordKey, ProjectRecord, CostLine.
"""
from datetime import date, datetime

import pytest

from pif_app.domain.entities import (
    RecordKey,
    ProjectRecord,
    CostLine,
    Scenario,
    fiscal_year_end,
    format_record_label,
)


class TestRecordKey:

    def test_line_number_defaults_to_one(self):
        assert RecordKey("REQ-1", "SUBJ-9").line_number == 1

    def test_label(self):
        assert RecordKey("REQ-1", "SUBJ-9", 2).label == "PIF REQ-1, Project SUBJ-9, Line 2"

    def test_label_tolerates_missing_parts(self):
        assert format_record_label(None, "S", None) == "PIF , Project S, Line NULL"

    def test_hashable_and_ordered(self):
        keys = {RecordKey("B", "1"), RecordKey("A", "2"), RecordKey("A", "1", 2), RecordKey("A", "1")}
        assert sorted(keys) == [
            RecordKey("A", "1", 1),
            RecordKey("A", "1", 2),
            RecordKey("A", "2", 1),
            RecordKey("B", "1", 1),
        ]

    def test_of_and_as_filter(self, make_record):
        key = RecordKey.of(make_record(request_id="R", subject_id="S", line_number=3))
        assert key == RecordKey("R", "S", 3)
        assert key.as_filter() == {"request_id": "R", "subject_id": "S", "line_number": 3}


class TestProjectRecord:

    @pytest.mark.parametrize("retain,include,eligible", [
        (True, True, True),
        (True, False, False),
        (False, True, False),
        (False, False, False),
    ])
    def test_archive_eligibility_needs_both_flags(self, make_record, retain, include, eligible):
        assert make_record(retain=retain, include=include).is_archive_eligible is eligible

    def test_from_dict_defaults_line_number(self):
        record = ProjectRecord.from_dict({
            "request_id": "R",
            "subject_id": "S",
            "line_number": None,
            "site": "ANO",
            "unknown_column": "ignored",
        })
        assert record.line_number == 1
        assert record.site == "ANO"
        assert record.retain is False

    def test_target_dates_kept_as_text(self, make_record):
        record = make_record(original_target_date="Quarterly")
        assert record.to_row()["original_target_date"] == "Quarterly"

    def test_is_immutable(self, make_record):
        record = make_record()
        with pytest.raises(Exception):
            record.site = "GGN"


class TestCostLine:

    def test_from_dict_computes_missing_variance(self):
        line = CostLine.from_dict({
            "request_id": "R",
            "subject_id": "S",
            "scenario": "Closings",
            "fiscal_year": 2027,
            "requested_cents": 15000,
            "baseline_cents": 10000,
        })
        assert line.variance_cents == 5000
        assert line.fiscal_year == date(2027, 12, 31)
        assert line.line_number == 1

    def test_from_dict_keeps_submitted_variance(self):
        line = CostLine.from_dict({
            "request_id": "R",
            "subject_id": "S",
            "scenario": "Target",
            "fiscal_year": "2026",
            "requested_cents": 15000,
            "baseline_cents": 10000,
            "variance_cents": 1,
        })
        assert line.variance_cents == 1

    def test_known_scenario(self, make_cost):
        assert make_cost(scenario="Target").is_known_scenario
        assert not make_cost(scenario="Budget").is_known_scenario
        assert Scenario.values() == ["Target", "Closings"]

    def test_key(self, make_cost):
        assert make_cost(line_number=4).key == RecordKey("PIF-001", "P100", 4)


class TestFiscalYearEnd:

    @pytest.mark.parametrize("value", [2026, "2026", " 2026 ", date(2026, 3, 1), datetime(2026, 7, 4, 12, 0)])
    def test_normalizes_to_december_31(self, value):
        assert fiscal_year_end(value) == date(2026, 12, 31)
