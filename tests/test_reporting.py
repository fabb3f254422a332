"""
Tests for the reporting views and Excel export.
"""
import io
from datetime import date

import pandas as pd
import pytest

from pif_app.domain.exceptions import UnknownSiteError
from pif_app.domain.services import InflightPromoter, ApprovedArchiver
from pif_app.modules.reporting import (
    ReportBuilder,
    WIDE_PROJECT_COLUMNS,
    HISTORY_COLUMNS,
    cost_column_name,
    wide_cost_columns,
    export_to_excel,
    frame_to_records,
)


@pytest.fixture
def populated(test_db, stage, make_record, make_cost):
    """ANO with two lines (P100 archive-eligible) and GGN with one."""
    stage("ANO", [
        make_record(retain=True, include=True),
        make_record(subject_id="P200"),
    ], [
        make_cost(),
        make_cost(scenario="Closings", fiscal_year=date(2028, 12, 31),
                  requested_cents=2_000_00, baseline_cents=1_000_00, variance_cents=1_000_00),
        make_cost(fiscal_year=date(2040, 12, 31)),
    ])
    InflightPromoter(test_db).commit("ANO")
    stage("GGN", [make_record(subject_id="P900", site="GGN")], [make_cost(subject_id="P900")])
    InflightPromoter(test_db).commit("GGN")
    return test_db


@pytest.fixture
def reports(test_db):
    return ReportBuilder(test_db)


def test_cost_column_names():
    assert cost_column_name("Target", "Req", 0) == "Target_Req_CY"
    assert cost_column_name("Closings", "Var", 3) == "Closings_Var_CY3"
    columns = wide_cost_columns(["Target", "Closings"], 5)
    assert len(columns) == 36
    assert columns[:7] == [
        "Target_Req_CY", "Target_Req_CY1", "Target_Req_CY2", "Target_Req_CY3",
        "Target_Req_CY4", "Target_Req_CY5", "Target_Curr_CY",
    ]


class TestInflightWide:

    def test_layout(self, populated, reports):
        df = reports.inflight_wide("ANO", reporting_year=2026)

        assert list(df.columns) == [
            *WIDE_PROJECT_COLUMNS, "submission_date",
            *wide_cost_columns(["Target", "Closings"], 5),
        ]
        assert df["subject_id"].tolist() == ["P100", "P200"]

    def test_cost_cells_in_dollars_by_year_offset(self, populated, reports):
        row = reports.inflight_wide("ANO", reporting_year=2026).iloc[0]

        assert row["Target_Req_CY"] == 150_000.0
        assert row["Target_Curr_CY"] == 100_000.0
        assert row["Target_Var_CY"] == 50_000.0
        assert row["Closings_Req_CY2"] == 2_000.0
        assert pd.isna(row["Target_Req_CY1"])
        assert row["prior_year_spend"] == 5_000.0

    def test_years_outside_horizon_dropped(self, populated, reports):
        df = reports.inflight_wide("ANO", reporting_year=2027)
        row = df.iloc[0]

        assert pd.isna(row["Target_Req_CY"])
        assert row["Closings_Req_CY1"] == 2_000.0
        assert not any(str(c).endswith("CY14") for c in df.columns)

    def test_line_without_costs_has_empty_cells(self, populated, reports):
        row = reports.inflight_wide("ANO", reporting_year=2026).iloc[1]
        assert row["subject_id"] == "P200"
        assert pd.isna(row["Target_Req_CY"])

    def test_fleet_reads_every_site(self, populated, reports):
        df = reports.inflight_wide("Fleet", reporting_year=2026)
        assert sorted(df["site"].unique()) == ["ANO", "GGN"]
        assert len(df) == 3

    def test_empty_site(self, populated, reports):
        df = reports.inflight_wide("WF3", reporting_year=2026)
        assert df.empty
        assert "Target_Req_CY" in df.columns

    def test_unknown_site(self, reports):
        with pytest.raises(UnknownSiteError):
            reports.inflight_wide("XYZ")


class TestApprovedAndHistory:

    def test_approved_wide(self, populated, reports):
        ApprovedArchiver(populated).archive("ANO")
        df = reports.approved_wide("Fleet", reporting_year=2026)

        assert df["subject_id"].tolist() == ["P100"]
        assert "approval_date" in df.columns
        assert df.iloc[0]["Target_Req_CY"] == 150_000.0

    def test_all_history(self, populated, reports):
        ApprovedArchiver(populated).archive("ANO")
        df = reports.all_history("ANO")

        assert list(df.columns) == HISTORY_COLUMNS
        assert df["source"].value_counts().to_dict() == {"Approved": 3, "Inflight": 1}
        inflight = df[df["source"] == "Inflight"].iloc[0]
        assert inflight["subject_id"] == "P200"
        assert pd.isna(inflight["scenario"])
        approved = df[(df["source"] == "Approved") & (df["scenario"] == "Closings")].iloc[0]
        assert approved["requested"] == 2_000.0
        assert pd.notna(approved["approval_date"])


class TestExport:

    def test_export_to_buffer(self, populated, reports):
        buffer = io.BytesIO()
        export_to_excel({
            "Inflight": reports.inflight_wide("ANO", reporting_year=2026),
            "History": reports.all_history("ANO"),
        }, buffer)

        buffer.seek(0)
        sheets = pd.read_excel(buffer, sheet_name=None)
        assert list(sheets) == ["Inflight", "History"]
        assert len(sheets["Inflight"]) == 2

    def test_export_to_path(self, populated, reports, tmp_path):
        path = export_to_excel({"Fleet": reports.inflight_wide("Fleet")}, tmp_path / "fleet.xlsx")
        assert path.exists()

    def test_frame_to_records(self):
        df = pd.DataFrame({"a": [1.5, float("nan")], "b": ["x", None]})
        assert frame_to_records(df) == [{"a": 1.5, "b": "x"}, {"a": None, "b": None}]
