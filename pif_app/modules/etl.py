"""
ETL Module for the PIF Submission Pipeline.
Reads a PIF spreadsheet extract into ProjectRecord and CostLine rows.

The extract is either an Excel workbook with a "Projects" and a "Costs" sheet,
or a pair of CSV files with the same headers. All monetary values converted to
integer cents using Decimal for precision. Values are carried as found:
range and presence rules are left to staging validation.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from pathlib import Path
from typing import Any, List, Optional, Union

import pandas as pd

from pif_app.domain.entities import ProjectRecord, CostLine, DEFAULT_LINE_NUMBER, fiscal_year_end
from pif_app.domain.exceptions import ExtractFormatError

logger = logging.getLogger(__name__)


PROJECTS_SHEET = "Projects"
COSTS_SHEET = "Costs"
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}

# Spreadsheet header -> ProjectRecord field
PROJECT_COLUMNS = {
    "PIF ID": "request_id",
    "Project ID": "subject_id",
    "Line Item": "line_number",
    "Status": "status",
    "Change Type": "change_type",
    "Accounting Treatment": "accounting_treatment",
    "Category": "category",
    "SEG": "segment",
    "OPCO": "opco",
    "Site": "site",
    "Strategic Rank": "strategic_rank",
    "Funding Project": "funding_project",
    "Project Name": "project_name",
    "Original FP ISD": "original_target_date",
    "Revised FP ISD": "revised_target_date",
    "Moving ISD Year": "moving_isd_year",
    "LCM Issue": "issue_reference",
    "Justification": "justification",
    "Prior Year Spend": "prior_year_spend_cents",
    "Archive": "retain",
    "Include": "include",
}

# Spreadsheet header -> CostLine field
COST_COLUMNS = {
    "PIF ID": "request_id",
    "Project ID": "subject_id",
    "Line Item": "line_number",
    "Scenario": "scenario",
    "Year": "fiscal_year",
    "Requested": "requested_cents",
    "Current": "baseline_cents",
    "Variance": "variance_cents",
}

REQUIRED_PROJECT_COLUMNS = ["PIF ID", "Project ID", "Site"]
REQUIRED_COST_COLUMNS = ["PIF ID", "Project ID", "Scenario", "Year"]

TRUE_FLAGS = {"true", "1", "y", "yes", "x"}
FALSE_FLAGS = {"false", "0", "n", "no", ""}


@dataclass
class Extract:
    """One site's spreadsheet extract, ready to stage."""
    site: Optional[str]
    records: List[ProjectRecord] = field(default_factory=list)
    cost_lines: List[CostLine] = field(default_factory=list)
    source_file: Optional[str] = None

    @property
    def record_count(self) -> int:
        return len(self.records)


# =============================================================================
# Cell Parsing
# =============================================================================

def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_money_to_cents(value: Union[str, float, int, None]) -> int:
    """
    Parse currency strings to integer cents.
    CRITICAL: Uses Decimal internally to avoid float precision loss.

    Handles:
        " 715,643.50 " → 71564350
        "$1,234.56"    → 123456
        "-$500.00"     → -50000
        "($1,000.00)"  → -100000 (accounting negative)
        " -   " or "-" → 0
        None, NaN, ""  → 0
        715643.50      → 71564350 (float/int input)

    Returns:
        int: Amount in cents, suitable for penny-perfect arithmetic
    """
    if is_blank(value):
        return 0

    if isinstance(value, str):
        s = value.strip()
        if s == '-':
            return 0

    if isinstance(value, (int, float, Decimal)):
        try:
            d = Decimal(str(value))
            cents = (d * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
            return int(cents)
        except (InvalidOperation, ValueError):
            return 0

    s = str(value).strip()

    # Detect negative (prefix '-', suffix '-', or parentheses for accounting notation)
    negative = False
    if s.startswith('-') or s.endswith('-') or (s.startswith('(') and s.endswith(')')):
        negative = True

    s = re.sub(r'[^\d.]', '', s)

    if s == '' or s == '.':
        return 0

    if s.count('.') > 1:
        return 0

    try:
        d = Decimal(s)
        cents = (d * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
        return -int(cents) if negative else int(cents)
    except (InvalidOperation, ValueError):
        return 0


def parse_optional_money(value: Any) -> Optional[int]:
    """Like parse_money_to_cents, but a blank cell stays None."""
    if is_blank(value):
        return None
    return parse_money_to_cents(value)


def cents_to_display(cents: int) -> str:
    """Format integer cents as USD display string."""
    if cents < 0:
        return f"-${abs(cents)/100:,.2f}"
    return f"${cents/100:,.2f}"


def parse_flag(value: Any) -> bool:
    """
    Parse a spreadsheet check-box style flag.

    Accepts True/False, 1/0, Y/N, Yes/No and X (case-insensitive);
    blank is False.

    Raises:
        ValueError: unrecognized flag text
    """
    if is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_FLAGS:
        return True
    if text in FALSE_FLAGS:
        return False
    raise ValueError(f"unrecognized flag value '{value}'")


def parse_text(value: Any) -> Optional[str]:
    """Cell as stripped text; whole-number floats lose their '.0'."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_int(value: Any) -> Optional[int]:
    """
    Cell as an integer, None when blank.

    Raises:
        ValueError: not a whole number
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"expected a whole number, found '{value}'")
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"expected a whole number, found '{value}'")
    if d != d.to_integral_value():
        raise ValueError(f"expected a whole number, found '{value}'")
    return int(d)


def format_target_date(value: Any) -> Optional[str]:
    """
    Target date cell as text.

    Real dates are rendered MM/DD/YYYY; anything else ("Annually",
    "Quarterly", "Q3 2026") is kept verbatim.
    """
    if is_blank(value):
        return None
    if isinstance(value, (datetime, date)):
        return value.strftime("%m/%d/%Y")
    return parse_text(value)


def parse_fiscal_year(value: Any) -> date:
    """
    Fiscal year cell as its 12/31 year-end date.

    Accepts a year number (2026, "2026", 2026.0) or any date in the year.

    Raises:
        ValueError: blank or unreadable year
    """
    if is_blank(value):
        raise ValueError("fiscal year is required")
    if isinstance(value, (datetime, date)):
        return fiscal_year_end(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"unreadable fiscal year '{value}'")
        return fiscal_year_end(int(value))

    text = str(value).strip()
    if text.isdigit():
        return fiscal_year_end(text)
    parsed = pd.to_datetime(text, errors='coerce')
    if pd.isna(parsed):
        raise ValueError(f"unreadable fiscal year '{value}'")
    return fiscal_year_end(parsed.to_pydatetime())


# =============================================================================
# Row Conversion
# =============================================================================

def _check_columns(df: pd.DataFrame, required: List[str], source: str) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ExtractFormatError(
            source,
            f"missing required column(s): {', '.join(missing)}. Found: {df.columns.tolist()}",
        )


def _line_number(row: dict) -> Optional[int]:
    """Missing Line Item column means the single-line layout (line 1)."""
    if "Line Item" not in row:
        return DEFAULT_LINE_NUMBER
    return parse_int(row["Line Item"])


def project_from_row(row: dict) -> ProjectRecord:
    """Build a ProjectRecord from one Projects sheet row (header -> cell)."""
    return ProjectRecord(
        request_id=parse_text(row.get("PIF ID")),
        subject_id=parse_text(row.get("Project ID")),
        line_number=_line_number(row),
        status=parse_text(row.get("Status")),
        change_type=parse_text(row.get("Change Type")),
        accounting_treatment=parse_text(row.get("Accounting Treatment")),
        category=parse_text(row.get("Category")),
        segment=parse_int(row.get("SEG")),
        opco=parse_text(row.get("OPCO")),
        site=parse_text(row.get("Site")),
        strategic_rank=parse_text(row.get("Strategic Rank")),
        funding_project=parse_text(row.get("Funding Project")),
        project_name=parse_text(row.get("Project Name")),
        original_target_date=format_target_date(row.get("Original FP ISD")),
        revised_target_date=format_target_date(row.get("Revised FP ISD")),
        moving_isd_year=parse_text(row.get("Moving ISD Year")),
        issue_reference=parse_text(row.get("LCM Issue")),
        justification=parse_text(row.get("Justification")),
        prior_year_spend_cents=parse_optional_money(row.get("Prior Year Spend")),
        retain=parse_flag(row.get("Archive")),
        include=parse_flag(row.get("Include")),
    )


def cost_line_from_row(row: dict) -> CostLine:
    """
    Build a CostLine from one Costs sheet row.

    A blank Variance cell is filled with requested - baseline.
    """
    requested = parse_optional_money(row.get("Requested"))
    baseline = parse_optional_money(row.get("Current"))
    variance = parse_optional_money(row.get("Variance"))
    if variance is None and requested is not None and baseline is not None:
        variance = requested - baseline

    return CostLine(
        request_id=parse_text(row.get("PIF ID")),
        subject_id=parse_text(row.get("Project ID")),
        line_number=_line_number(row),
        scenario=parse_text(row.get("Scenario")),
        fiscal_year=parse_fiscal_year(row.get("Year")),
        requested_cents=requested,
        baseline_cents=baseline,
        variance_cents=variance,
    )


def _is_empty_row(row: dict) -> bool:
    return all(is_blank(value) for value in row.values())


def frames_to_extract(
    projects_df: pd.DataFrame,
    costs_df: pd.DataFrame,
    site: Optional[str] = None,
    source_file: Optional[str] = None,
) -> Extract:
    """
    Convert Projects and Costs frames into an Extract.

    Fully empty rows are skipped. When no site is given it is taken from the
    Site column if every row agrees.

    Raises:
        ExtractFormatError: missing columns or an unreadable cell
    """
    source = source_file or "<frames>"
    _check_columns(projects_df, REQUIRED_PROJECT_COLUMNS, source)
    _check_columns(costs_df, REQUIRED_COST_COLUMNS, source)

    records = []
    # Header is spreadsheet row 1
    for index, row in enumerate(projects_df.to_dict(orient='records'), start=2):
        if _is_empty_row(row):
            continue
        try:
            records.append(project_from_row(row))
        except ValueError as e:
            raise ExtractFormatError(f"{source} [{PROJECTS_SHEET}]", str(e), row=index) from e

    cost_lines = []
    for index, row in enumerate(costs_df.to_dict(orient='records'), start=2):
        if _is_empty_row(row):
            continue
        try:
            cost_lines.append(cost_line_from_row(row))
        except ValueError as e:
            raise ExtractFormatError(f"{source} [{COSTS_SHEET}]", str(e), row=index) from e

    if site is None:
        sites = {record.site for record in records if record.site}
        if len(sites) == 1:
            site = sites.pop()

    logger.info(
        f"Read {len(records)} projects and {len(cost_lines)} cost lines "
        f"from {source} for site {site}"
    )
    return Extract(site=site, records=records, cost_lines=cost_lines, source_file=source_file)


def read_extract(
    path: Union[str, Path],
    costs_path: Optional[Union[str, Path]] = None,
    site: Optional[str] = None,
) -> Extract:
    """
    Read a PIF extract from disk.

    Args:
        path: Excel workbook, or the Projects CSV
        costs_path: Costs CSV (required when path is a CSV)
        site: Declared site; inferred from the Site column when omitted

    Returns:
        Extract
    """
    path = Path(path)
    if not path.exists():
        raise ExtractFormatError(str(path), "file not found")

    if path.suffix.lower() in EXCEL_SUFFIXES:
        try:
            sheets = pd.read_excel(path, sheet_name=[PROJECTS_SHEET, COSTS_SHEET], dtype=object)
        except ValueError as e:
            raise ExtractFormatError(str(path), f"expected sheets '{PROJECTS_SHEET}' and '{COSTS_SHEET}': {e}")
        projects_df = sheets[PROJECTS_SHEET]
        costs_df = sheets[COSTS_SHEET]
    else:
        if costs_path is None:
            raise ExtractFormatError(str(path), "a CSV extract needs a costs file as well")
        costs_path = Path(costs_path)
        if not costs_path.exists():
            raise ExtractFormatError(str(costs_path), "file not found")
        projects_df = pd.read_csv(path, dtype=object, encoding='utf-8-sig')
        costs_df = pd.read_csv(costs_path, dtype=object, encoding='utf-8-sig')

    projects_df.columns = [str(col).strip() for col in projects_df.columns]
    costs_df.columns = [str(col).strip() for col in costs_df.columns]
    return frames_to_extract(projects_df, costs_df, site=site, source_file=path.name)
