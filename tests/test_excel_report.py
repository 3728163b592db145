"""Tests for the Excel import report."""

from pathlib import Path

import pytest
from openpyxl import load_workbook

from ofx_ledger_sync.importer import StatementImporter
from ofx_ledger_sync.models.transaction import ImportReport, SubmitResult
from ofx_ledger_sync.reports.excel_generator import ImportReportGenerator
from ofx_ledger_sync.utils.exceptions import ReportGenerationError

from .helpers import always_duplicate


@pytest.fixture
def reports(sync_config, fake_client, store, sample_ofx, tmp_path):
    directory = sync_config.input.transaction_dir / "Household" / "Credit Card"
    directory.mkdir(parents=True)
    path = directory / "nov.qfx"
    path.write_text(sample_ofx)

    importer = StatementImporter(sync_config, fake_client, store)
    first = importer.import_file(path)
    second = importer.import_file(path)
    missing = ImportReport(file_path=Path("missing.qfx"), account=None, error="No such file")
    return [first, second, missing]


def test_generate_report(sync_config, reports, tmp_path):
    output = tmp_path / "out" / "report.xlsx"

    path = ImportReportGenerator(sync_config).generate_report(reports, output)

    assert path == output
    wb = load_workbook(path)
    assert wb.sheetnames == ["Summary", "Submitted", "Already Imported", "Unresolved"]

    summary = wb["Summary"]
    assert summary["A1"].value == "Statement Import Summary"
    assert summary["B3"].value == 3  # files processed
    assert summary["B4"].value == 1  # files failed
    assert summary["B5"].value == 4  # transactions created
    assert summary["B6"].value == 4  # already imported

    submitted = wb["Submitted"]
    assert submitted.max_row == 5
    assert submitted["G2"].value == "YNAB:2024-11-15:-500:1"

    skipped = wb["Already Imported"]
    assert skipped.max_row == 5
    assert skipped["E2"].value == "PARKING PAY MACHINE"


def test_unresolved_sheet(sync_config, fake_client, store, sample_ofx, tmp_path):
    directory = sync_config.input.transaction_dir / "Household" / "Credit Card"
    directory.mkdir(parents=True)
    path = directory / "nov.qfx"
    path.write_text(sample_ofx)
    fake_client.script = [always_duplicate] * 10

    reports = StatementImporter(sync_config, fake_client, store).import_files([path])
    output = ImportReportGenerator(sync_config).generate_report(reports, tmp_path / "r.xlsx")

    unresolved = load_workbook(output)["Unresolved"]
    assert unresolved.max_row == 5
    assert unresolved["E2"].value == "YNAB:2024-11-15:-500:10"


def test_disabled_sheets(sync_config, reports, tmp_path):
    sync_config.output.sheets.submitted.enabled = False
    sync_config.output.sheets.skipped.enabled = False

    path = ImportReportGenerator(sync_config).generate_report(reports, tmp_path / "r.xlsx")

    assert load_workbook(path).sheetnames == ["Summary", "Unresolved"]


def test_all_sheets_disabled(sync_config, reports, tmp_path):
    for sheet in ("summary", "submitted", "skipped", "unresolved"):
        getattr(sync_config.output.sheets, sheet).enabled = False

    with pytest.raises(ReportGenerationError):
        ImportReportGenerator(sync_config).generate_report(reports, tmp_path / "r.xlsx")


def test_incomplete_import_lists_created_transactions(
    sync_config, fake_client, store, sample_ofx, tmp_path
):
    directory = sync_config.input.transaction_dir / "Household" / "Credit Card"
    directory.mkdir(parents=True)
    path = directory / "nov.qfx"
    path.write_text(sample_ofx)

    def create_parking_only(transactions):
        return SubmitResult(
            created_import_ids=[t.import_id for t in transactions if t.amount == -500],
            duplicate_import_ids=[t.import_id for t in transactions if t.amount != -500],
        )

    fake_client.script = [create_parking_only] * 10

    reports = StatementImporter(sync_config, fake_client, store).import_files([path])
    output = ImportReportGenerator(sync_config).generate_report(reports, tmp_path / "r.xlsx")

    wb = load_workbook(output)
    summary = wb["Summary"]
    assert summary["B5"].value == 1  # transactions created
    assert summary["B7"].value == 3  # unresolved
    assert summary["C10"].value == 4  # parsed
    assert summary["D10"].value == 1  # created
    submitted = wb["Submitted"]
    assert submitted.max_row == 2
    assert submitted["B2"].value == "Household/Credit Card"
    assert submitted["G2"].value == "YNAB:2024-11-15:-500:1"
