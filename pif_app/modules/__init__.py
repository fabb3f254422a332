# PIF Submission Pipeline - Modules
from .etl import Extract, read_extract, frames_to_extract, parse_money_to_cents, cents_to_display
from .reporting import ReportBuilder, export_to_excel

__all__ = [
    "Extract",
    "read_extract",
    "frames_to_extract",
    "parse_money_to_cents",
    "cents_to_display",
    "ReportBuilder",
    "export_to_excel",
]
