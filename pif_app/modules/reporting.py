"""
Reporting Module for the PIF Submission Pipeline.

Builds pandas views over the inflight and approved stages:
- wide views: one row per project line, cost cells pivoted into
  {Scenario}_{Req|Curr|Var}_CY..CY<horizon> columns relative to the reporting year
- all-history view: inflight and approved cost cells in long format with a source column

Site filters accept the fleet pseudo-site, meaning every site.
Money columns are reported in dollars.
"""
import logging
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Union

import pandas as pd
from sqlalchemy.orm import Session

from pif_app.config import PIFConfig, get_config
from pif_app.domain.services.site_service import SiteGuard
from pif_app.infrastructure.repositories import InflightRepository, ApprovedRepository
from pif_app.models import PROJECT_ATTRIBUTE_FIELDS

logger = logging.getLogger(__name__)


MEASURES = {
    "Req": "requested_cents",
    "Curr": "baseline_cents",
    "Var": "variance_cents",
}

KEY_COLUMNS = ["request_id", "subject_id", "line_number"]

# Leading columns of the wide views, in spreadsheet order
WIDE_PROJECT_COLUMNS = [
    "retain", "include", "accounting_treatment", "change_type",
    "request_id", "subject_id", "line_number",
    "segment", "opco", "site", "strategic_rank", "funding_project", "project_name",
    "original_target_date", "revised_target_date", "moving_isd_year",
    "issue_reference", "status", "category", "justification", "prior_year_spend",
]

HISTORY_COLUMNS = [
    "source", *KEY_COLUMNS, "submission_date", "approval_date",
    *[name for name in PROJECT_ATTRIBUTE_FIELDS if name != "prior_year_spend_cents"],
    "prior_year_spend",
    "scenario", "fiscal_year", "requested", "baseline", "variance",
]


def cost_column_name(scenario: str, measure: str, offset: int) -> str:
    """'Target', 'Req', 0 -> 'Target_Req_CY'; offset 2 -> 'Target_Req_CY2'."""
    suffix = "" if offset == 0 else str(offset)
    return f"{scenario}_{measure}_CY{suffix}"


def wide_cost_columns(scenarios: List[str], horizon_years: int) -> List[str]:
    """All pivoted cost columns in display order."""
    return [
        cost_column_name(scenario, measure, offset)
        for scenario in scenarios
        for measure in MEASURES
        for offset in range(horizon_years + 1)
    ]


def _to_dollars(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors='coerce') / 100


def _empty_pivot(columns: List[str]) -> pd.DataFrame:
    df = pd.DataFrame(columns=["project_row_id", *columns])
    return df.astype({"project_row_id": "int64"})


class ReportBuilder:
    """Read-only report views for one site or the whole fleet."""

    def __init__(self, db: Session, config: Optional[PIFConfig] = None):
        self.db = db
        self.config = config or get_config()
        self.site_guard = SiteGuard(self.config)
        self.inflight_repo = InflightRepository(db)
        self.approved_repo = ApprovedRepository(db)

    # =========================================================================
    # Frames
    # =========================================================================

    def _project_frame(self, projects, extra_columns: List[str]) -> pd.DataFrame:
        columns = ["project_row_id", *KEY_COLUMNS, *PROJECT_ATTRIBUTE_FIELDS, *extra_columns]
        rows = []
        for project in projects:
            row = {"project_row_id": project.id}
            for name in columns[1:]:
                row[name] = getattr(project, name)
            rows.append(row)
        df = pd.DataFrame(rows, columns=columns)
        df["project_row_id"] = df["project_row_id"].astype("int64")
        df["prior_year_spend"] = _to_dollars(df["prior_year_spend_cents"])
        return df.drop(columns=["prior_year_spend_cents"])

    def _cost_frame(self, cost_lines) -> pd.DataFrame:
        columns = ["project_row_id", "scenario", "fiscal_year", *MEASURES.values()]
        rows = [
            {name: getattr(cost, name) for name in columns}
            for cost in cost_lines
        ]
        df = pd.DataFrame(rows, columns=columns)
        df["project_row_id"] = df["project_row_id"].astype("int64")
        return df

    def _pivot(self, costs: pd.DataFrame, reporting_year: int) -> pd.DataFrame:
        """Long cost cells -> one row per project_row_id with CY columns."""
        horizon = self.config.horizon_years
        scenarios = self.config.scenarios
        columns = wide_cost_columns(scenarios, horizon)

        if costs.empty:
            return _empty_pivot(columns)

        costs = costs.copy()
        costs["offset"] = costs["fiscal_year"].map(lambda d: d.year) - reporting_year
        costs = costs[
            costs["offset"].between(0, horizon) & costs["scenario"].isin(scenarios)
        ]
        if costs.empty:
            return _empty_pivot(columns)

        long = costs.melt(
            id_vars=["project_row_id", "scenario", "offset"],
            value_vars=list(MEASURES.values()),
            var_name="measure_column",
            value_name="cents",
        )
        measure_names = {column: measure for measure, column in MEASURES.items()}
        long["column"] = [
            cost_column_name(scenario, measure_names[measure_column], int(offset))
            for scenario, measure_column, offset in zip(
                long["scenario"], long["measure_column"], long["offset"]
            )
        ]
        long["value"] = _to_dollars(long["cents"])

        pivoted = long.pivot_table(
            index="project_row_id",
            columns="column",
            values="value",
            aggfunc="max",
        )
        pivoted = pivoted.reindex(columns=columns)
        pivoted.columns.name = None
        return pivoted.reset_index()

    def _wide(self, projects, cost_lines, stamp_columns: List[str],
              reporting_year: Optional[int]) -> pd.DataFrame:
        year = reporting_year or self.config.reporting_year
        project_df = self._project_frame(projects, stamp_columns)
        pivoted = self._pivot(self._cost_frame(cost_lines), year)

        wide = project_df.merge(pivoted, on="project_row_id", how="left")
        cost_columns = wide_cost_columns(self.config.scenarios, self.config.horizon_years)
        ordered = [*WIDE_PROJECT_COLUMNS, *stamp_columns, *cost_columns]
        return wide.reindex(columns=ordered).reset_index(drop=True)

    # =========================================================================
    # Views
    # =========================================================================

    def inflight_wide(self, site: str, reporting_year: Optional[int] = None) -> pd.DataFrame:
        """Inflight working set in spreadsheet layout."""
        site_filter = self.site_guard.resolve_readable(site)
        df = self._wide(
            self.inflight_repo.get_by_site(site_filter),
            self.inflight_repo.get_cost_lines(site_filter),
            ["submission_date"],
            reporting_year,
        )
        logger.info(f"Built inflight wide view for {site}: {len(df)} rows")
        return df

    def approved_wide(self, site: str, reporting_year: Optional[int] = None) -> pd.DataFrame:
        """Approved archive in spreadsheet layout."""
        site_filter = self.site_guard.resolve_readable(site)
        df = self._wide(
            self.approved_repo.get_by_site(site_filter),
            self.approved_repo.get_cost_lines(site_filter),
            ["submission_date", "approval_date"],
            reporting_year,
        )
        logger.info(f"Built approved wide view for {site}: {len(df)} rows")
        return df

    def all_history(self, site: str) -> pd.DataFrame:
        """
        Inflight and approved cost cells in long format.

        Project lines without cost cells appear once with empty cost columns.
        """
        site_filter = self.site_guard.resolve_readable(site)
        parts = []
        for source, repo, stamps in (
            ("Inflight", self.inflight_repo, ["submission_date"]),
            ("Approved", self.approved_repo, ["submission_date", "approval_date"]),
        ):
            projects = self._project_frame(repo.get_by_site(site_filter), stamps)
            costs = self._cost_frame(repo.get_cost_lines(site_filter))
            merged = projects.merge(costs, on="project_row_id", how="left")
            merged["source"] = source
            parts.append(merged)

        history = pd.concat(parts, ignore_index=True)
        history["requested"] = _to_dollars(history["requested_cents"])
        history["baseline"] = _to_dollars(history["baseline_cents"])
        history["variance"] = _to_dollars(history["variance_cents"])
        return history.reindex(columns=HISTORY_COLUMNS)


def export_to_excel(
    sheets: Dict[str, pd.DataFrame],
    target: Union[str, Path, BinaryIO],
) -> Union[Path, BinaryIO]:
    """Write each frame to its own worksheet of a file path or binary buffer."""
    if isinstance(target, (str, Path)):
        target = Path(target)
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name[:31], index=False)
    logger.info(f"Exported {len(sheets)} sheet(s)")
    return target


def frame_to_records(df: pd.DataFrame) -> List[dict]:
    """Rows as JSON-friendly dicts (NaN/NaT become None)."""
    return df.astype(object).where(pd.notna(df), None).to_dict(orient="records")
