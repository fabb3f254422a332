"""
Tests for the pif command-line interface.
"""
import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pif_app.cli import cli
from pif_app.models import StagingProject, InflightProject, ApprovedProject, SubmissionLog


PROJECTS_CSV = (
    "PIF ID,Project ID,Line Item,Site,Status,Change Type,SEG,Justification,Archive,Include\n"
    "PIF-001,P100,1,ANO,Approved,Add,1200,Board approved,Y,Y\n"
    "PIF-001,P200,1,ANO,Open,Add,1200,,,\n"
)

COSTS_CSV = (
    "PIF ID,Project ID,Line Item,Scenario,Year,Requested,Current,Variance\n"
    "PIF-001,P100,1,Target,2026,150000,100000,50000\n"
)

ADVISORY_COSTS_CSV = (
    "PIF ID,Project ID,Line Item,Scenario,Year,Requested,Current,Variance\n"
    "PIF-001,P100,1,Target,2026,3000000,1000000,2000000\n"
)


@pytest.fixture
def opened_sessions():
    return []


@pytest.fixture
def runner(test_db, opened_sessions):
    def fake_get_db():
        opened_sessions.append("open")
        try:
            yield test_db
        finally:
            opened_sessions[-1] = "closed"

    with patch("pif_app.cli.commands.get_db", fake_get_db):
        yield CliRunner()


@pytest.fixture
def extract_files(tmp_path: Path):
    projects = tmp_path / "ano_projects.csv"
    costs = tmp_path / "ano_costs.csv"
    projects.write_text(PROJECTS_CSV)
    costs.write_text(COSTS_CSV)
    return str(projects), str(costs)


class TestLoadAndValidate:

    def test_load_then_validate(self, test_db, runner, extract_files):
        projects, costs = extract_files
        result = runner.invoke(cli, ["load", projects, "--costs", costs, "--site", "ANO"])

        assert result.exit_code == 0, result.output
        assert "Staged 2 projects and 1 cost lines for ANO" in result.output
        assert test_db.query(StagingProject).count() == 2

        result = runner.invoke(cli, ["validate", "--site", "ANO"])
        assert result.exit_code == 0
        assert "No validation findings" in result.output

    def test_validate_blocking_exits_nonzero(self, stage, runner, make_record):
        stage("ANO", [make_record(change_type=None)])
        result = runner.invoke(cli, ["validate", "--site", "ANO"])

        assert result.exit_code == 1
        assert "Missing Change Type" in result.output
        assert "Blocking: 1" in result.output

    def test_validate_json(self, stage, runner, make_record):
        stage("ANO", [make_record(), make_record()])
        result = runner.invoke(cli, ["validate", "--site", "ANO", "--json"])

        data = json.loads(result.stdout)
        assert data["blocking_count"] == 1
        assert data["findings"][0]["finding_type"] == "Duplicate"

    def test_load_into_fleet_rejected(self, runner, extract_files):
        projects, costs = extract_files
        result = runner.invoke(cli, ["load", projects, "--costs", costs, "--site", "Fleet"])

        assert result.exit_code == 1
        assert "read-only" in result.output

    def test_csv_without_costs_rejected(self, runner, extract_files):
        projects, _ = extract_files
        result = runner.invoke(cli, ["load", projects, "--site", "ANO"])

        assert result.exit_code == 1
        assert "costs file" in result.output

    def test_session_closed_after_command(self, runner, opened_sessions):
        runner.invoke(cli, ["validate", "--site", "ANO"])
        assert opened_sessions == ["closed"]

    def test_session_closed_when_command_fails(self, runner, opened_sessions, extract_files):
        projects, costs = extract_files
        result = runner.invoke(cli, ["load", projects, "--costs", costs, "--site", "Fleet"])

        assert result.exit_code == 1
        assert opened_sessions == ["closed"]


class TestSaveAndFinalize:

    def test_save_snapshot(self, test_db, runner, extract_files):
        projects, costs = extract_files
        result = runner.invoke(cli, ["save", "--site", "ANO", "--extract", projects, "--costs", costs])

        assert result.exit_code == 0, result.output
        assert "save_snapshot succeeded for ANO" in result.output
        assert "Inflight: 2 projects, 1 cost lines" in result.output
        assert test_db.query(InflightProject).count() == 2

    def test_advisory_prompt_declined(self, test_db, runner, tmp_path):
        projects = tmp_path / "p.csv"
        costs = tmp_path / "c.csv"
        projects.write_text(PROJECTS_CSV)
        costs.write_text(ADVISORY_COSTS_CSV)

        result = runner.invoke(
            cli, ["save", "--site", "ANO", "--extract", str(projects), "--costs", str(costs)],
            input="n\n",
        )

        assert result.exit_code == 0
        assert "Variance Threshold Exceeded" in result.output
        assert "cancelled" in result.output
        assert test_db.query(InflightProject).count() == 0

    def test_advisory_accepted_with_yes(self, test_db, runner, tmp_path):
        projects = tmp_path / "p.csv"
        costs = tmp_path / "c.csv"
        projects.write_text(PROJECTS_CSV)
        costs.write_text(ADVISORY_COSTS_CSV)

        result = runner.invoke(
            cli, ["save", "--site", "ANO", "--extract", str(projects), "--costs", str(costs), "--yes"],
        )

        assert result.exit_code == 0
        assert "1 advisory finding(s) accepted" in result.output
        assert test_db.query(InflightProject).count() == 2

    def test_finalize_json(self, test_db, runner, extract_files):
        projects, costs = extract_files
        result = runner.invoke(cli, [
            "finalize", "--site", "ANO", "--extract", projects, "--costs", costs,
            "--submitted-by", "analyst", "--json",
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["stage"] == "ARCHIVED"
        assert data["archive"]["projects_archived"] == 1
        assert test_db.query(ApprovedProject).count() == 1
        entry = test_db.query(SubmissionLog).one()
        assert entry.submitted_by == "analyst"
        assert entry.source_file == "ano_projects.csv"

    def test_finalize_fleet_fails(self, runner):
        result = runner.invoke(cli, ["finalize", "--site", "Fleet", "--yes"])

        assert result.exit_code == 1
        assert "failed at 'site'" in result.output


class TestReport:

    def test_inflight_report(self, runner, extract_files):
        projects, costs = extract_files
        runner.invoke(cli, ["save", "--site", "ANO", "--extract", projects, "--costs", costs])

        result = runner.invoke(cli, ["report", "inflight", "--site", "ANO", "--year", "2026"])
        assert result.exit_code == 0
        assert "P100" in result.output

    def test_empty_report(self, runner):
        result = runner.invoke(cli, ["report", "approved"])
        assert result.exit_code == 0
        assert "No approved rows for Fleet" in result.output

    def test_report_to_excel(self, runner, tmp_path):
        output = tmp_path / "history.xlsx"
        result = runner.invoke(cli, ["report", "history", "--site", "GGN", "--output", str(output)])

        assert result.exit_code == 0
        assert output.exists()

    def test_unknown_site(self, runner):
        result = runner.invoke(cli, ["report", "inflight", "--site", "XYZ"])
        assert result.exit_code == 1
        assert "Unknown site" in result.output
