"""Reporting module for h2osheet.

CSV and Excel exports of a technical sheet.
"""

from h2osheet.reporting.export import export_summary_csv, export_summary_excel

__all__ = ["export_summary_csv", "export_summary_excel"]
