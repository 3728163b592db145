"""
Excel report generator for statement imports.
Creates a workbook listing what each import created, skipped or left unresolved.
"""

from pathlib import Path
from typing import Any, Sequence
import logging

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..config import SyncConfig
from ..models.transaction import ImportReport
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
CREATED_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
SKIPPED_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNRESOLVED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ImportReportGenerator:
    """Generates Excel import reports with one sheet per outcome."""

    def __init__(self, config: SyncConfig):
        self.config = config
        self.sheet_config = config.output.sheets

    def generate_report(self, reports: Sequence[ImportReport], output_path: Path) -> Path:
        """
        Write the report workbook.

        Args:
            reports: Import reports, one per processed file
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, reports)
        if sheets.submitted.enabled:
            self._create_submitted_sheet(wb, reports)
        if sheets.skipped.enabled:
            self._create_skipped_sheet(wb, reports)
        if sheets.unresolved.enabled:
            self._create_unresolved_sheet(wb, reports)

        if not wb.sheetnames:
            raise ReportGenerationError("All report sheets are disabled")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, reports: Sequence[ImportReport]) -> None:
        """One row per imported file."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Statement Import Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        totals = [
            ("Files Processed:", len(reports)),
            ("Files Failed:", sum(1 for r in reports if not r.succeeded)),
            ("Transactions Created:", sum(len(r.committed) for r in reports)),
            ("Already Imported:", sum(len(r.result.skipped) for r in reports if r.result)),
            ("Unresolved:", sum(len(r.unresolved) for r in reports)),
        ]
        for i, (label, value) in enumerate(totals, start=3):
            ws[f"A{i}"] = label
            ws[f"B{i}"] = value

        header_row = len(totals) + 4
        headers = ["File", "Account", "Parsed", "Created", "Already Imported", "Rounds", "Status", "Error"]
        self._write_headers(ws, headers, row=header_row)

        for row_num, report in enumerate(reports, start=header_row + 1):
            result = report.result
            row_data = [
                report.file_path.name,
                report.account.label if report.account else "",
                report.parsed_count,
                len(report.committed),
                len(result.skipped) if result else 0,
                result.rounds if result else "",
                "OK" if report.succeeded else "FAILED",
                report.error or "",
            ]
            fill = None if report.succeeded else UNRESOLVED_FILL
            self._write_row(ws, row_num, row_data, fill)

        self._auto_fit_columns(ws)

    def _create_submitted_sheet(self, wb: Workbook, reports: Sequence[ImportReport]) -> None:
        ws = wb.create_sheet(self.sheet_config.submitted.name)
        headers = ["File", "Account", "Date", "Amount", "Payee", "Memo", "Import ID", "Round"]
        self._write_headers(ws, headers)

        row_num = 2
        for report in reports:
            for entry in report.committed:
                row_data = [
                    report.file_path.name,
                    report.account.label,
                    entry.key.date,
                    float(entry.raw.amount),
                    entry.raw.payee_name or "",
                    entry.raw.memo or "",
                    entry.import_id,
                    entry.round,
                ]
                self._write_row(ws, row_num, row_data, CREATED_FILL)
                row_num += 1

        self._auto_fit_columns(ws)

    def _create_skipped_sheet(self, wb: Workbook, reports: Sequence[ImportReport]) -> None:
        ws = wb.create_sheet(self.sheet_config.skipped.name)
        headers = ["File", "Account", "Date", "Amount", "Payee", "Memo"]
        self._write_headers(ws, headers)

        row_num = 2
        for report in reports:
            if not report.result:
                continue
            for raw in report.result.skipped:
                row_data = [
                    report.file_path.name,
                    report.result.account.label,
                    raw.posted_date,
                    float(raw.amount),
                    raw.payee_name or "",
                    raw.memo or "",
                ]
                self._write_row(ws, row_num, row_data, SKIPPED_FILL)
                row_num += 1

        self._auto_fit_columns(ws)

    def _create_unresolved_sheet(self, wb: Workbook, reports: Sequence[ImportReport]) -> None:
        ws = wb.create_sheet(self.sheet_config.unresolved.name)
        headers = ["File", "Date", "Amount", "Payee", "Last Import ID", "Rounds"]
        self._write_headers(ws, headers)

        row_num = 2
        for report in reports:
            for entry in report.unresolved:
                row_data = [
                    report.file_path.name,
                    entry.key.date,
                    float(entry.raw.amount),
                    entry.raw.payee_name or "",
                    entry.import_id,
                    entry.round,
                ]
                self._write_row(ws, row_num, row_data, UNRESOLVED_FILL)
                row_num += 1

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str], row: int = 1) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_row(self, ws: Worksheet, row: int, values: list[Any], fill: Any = None) -> None:
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            if fill is not None:
                cell.fill = fill

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = get_column_letter(column_cells[0].column)
            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))
            ws.column_dimensions[column].width = min(max_length + 2, 50)
