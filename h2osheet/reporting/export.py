"""
Export utilities for technical sheets.

Provides CSV and Excel export of a sheet's summary rows.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from h2osheet.models import FieldValue, SummaryRow, TableSection
from h2osheet.sheet.completion import overall_completion, section_completion
from h2osheet.sheet.projections import map_sections_to_summary_rows

SUMMARY_HEADERS = [
    "Section",
    "Field ID",
    "Field",
    "Type",
    "Value",
    "Unit",
    "Source",
    "Description",
]


def _sanitize_sheet_name(name: str) -> str:
    """Ensure Excel sheet name is valid and within length."""
    safe = "".join("-" if ch in '[]:*?/\\' else ch for ch in name).strip()
    if not safe:
        safe = "Sheet"
    return safe[:31]


def format_value(value: FieldValue | None) -> str:
    """Format a field value for export."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_percentage(value: int | float | None) -> str:
    """Format percentage value for export."""
    if value is None:
        return "N/A"
    return f"{value}%"


def _row_values(row: SummaryRow) -> list[str]:
    return [
        row.section_title,
        row.field_id,
        row.field_label,
        row.field_type,
        format_value(row.current_value),
        row.unit or "",
        row.source or "",
        row.description or "",
    ]


def export_summary_csv(sections: list[TableSection]) -> str:
    """Render a sheet's summary rows as CSV.

    Returns:
        CSV text with a header row
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(SUMMARY_HEADERS)
    for row in map_sections_to_summary_rows(sections):
        writer.writerow(_row_values(row))
    return output.getvalue()


class ExcelExporter:
    """Excel workbook exporter with styling."""

    def __init__(self, title: str, project_id: str):
        self.wb = Workbook()
        self.title = title
        self.project_id = project_id
        self.timestamp = datetime.now()

        # Remove default sheet
        if "Sheet" in self.wb.sheetnames:
            self.wb.remove(self.wb["Sheet"])

        self.header_fill = PatternFill(start_color="1F6FB2", end_color="1F6FB2", fill_type="solid")
        self.header_font = Font(bold=True, color="FFFFFF", size=12)
        self.border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    def add_metadata_sheet(self, completion: int):
        """Add metadata sheet with export information."""
        ws = self.wb.create_sheet(_sanitize_sheet_name("Export Info"), 0)

        ws['A1'] = self.title
        ws['A1'].font = Font(bold=True, size=16, color="1F6FB2")

        ws['A3'] = "Project:"
        ws['B3'] = self.project_id
        ws['A4'] = "Generated:"
        ws['B4'] = self.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        ws['A5'] = "Completion:"
        ws['B5'] = format_percentage(completion)

        for row in range(3, 6):
            ws[f'A{row}'].font = Font(bold=True)

        ws.column_dimensions['A'].width = 20
        ws.column_dimensions['B'].width = 40

    def add_table_sheet(self, name: str, headers: list[str], rows: list[list[Any]], width: int = 22):
        """Add a sheet with a styled header row and one row per entry."""
        ws = self.wb.create_sheet(_sanitize_sheet_name(name))

        if not rows:
            ws['A1'] = "No data available"
            return

        for col_idx, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = Alignment(horizontal='center', vertical='center')
            cell.border = self.border

        for row_idx, values in enumerate(rows, start=2):
            for col_idx, value in enumerate(values, start=1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = self.border
                cell.alignment = Alignment(horizontal='left', vertical='center', wrap_text=True)

        for col_idx in range(1, len(headers) + 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        # Freeze header row
        ws.freeze_panes = 'A2'

    def save(self) -> bytes:
        """Save workbook to bytes."""
        buffer = io.BytesIO()
        self.wb.save(buffer)
        buffer.seek(0)
        return buffer.getvalue()


def export_summary_excel(sections: list[TableSection], project_id: str) -> bytes:
    """Export a sheet to an Excel workbook.

    Sheets: "Export Info", "Technical Sheet" (one row per field) and
    "Completion" (one row per section).
    """
    exporter = ExcelExporter("Technical Sheet", project_id)
    exporter.add_metadata_sheet(overall_completion(sections).percentage)

    rows = [_row_values(row) for row in map_sections_to_summary_rows(sections)]
    exporter.add_table_sheet("Technical Sheet", SUMMARY_HEADERS, rows)

    completion_rows = []
    for section in sections:
        stats = section_completion(section)
        completion_rows.append(
            [section.title, stats.completed, stats.total, format_percentage(stats.percentage)]
        )
    exporter.add_table_sheet(
        "Completion", ["Section", "Completed", "Total", "Completion"], completion_rows
    )

    return exporter.save()
