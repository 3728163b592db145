"""Tests for per-file import orchestration."""

from datetime import date

import pytest

from ofx_ledger_sync.importer import StatementImporter
from ofx_ledger_sync.models.transaction import SubmitResult
from ofx_ledger_sync.utils.exceptions import (
    ImportIncompleteError,
    NotOFXDocumentError,
    PathResolutionError,
)

from .helpers import always_duplicate, make_statement


@pytest.fixture
def importer(sync_config, fake_client, store):
    return StatementImporter(sync_config, fake_client, store)


@pytest.fixture
def statement_path(sync_config, sample_ofx):
    directory = sync_config.input.transaction_dir / "Household" / "Credit Card"
    directory.mkdir(parents=True)
    path = directory / "nov.qfx"
    path.write_text(sample_ofx)
    return path


def test_import_file(importer, fake_client, store, statement_path):
    report = importer.import_file(statement_path)

    assert report.succeeded
    assert report.account.label == "Household/Credit Card"
    assert report.parsed_count == 4
    assert report.result.created_count == 4
    assert report.finished_at is not None

    [entry] = store.import_history()
    assert entry.file_name == "nov.qfx"
    assert entry.status == "done"
    assert entry.import_ids == fake_client.submitted_import_ids[0]


def test_reimporting_a_file_creates_nothing(importer, fake_client, statement_path):
    importer.import_file(statement_path)

    report = importer.import_file(statement_path)

    assert report.result.created_count == 0
    assert len(report.result.skipped) == 4
    assert len(fake_client.submissions) == 1


def test_explicit_account(importer, tmp_path, sample_ofx):
    path = tmp_path / "download.ofx"
    path.write_text(sample_ofx)

    report = importer.import_file(path, "Household/Credit Card")

    assert report.result.created_count == 4


def test_unknown_account(importer, fake_client, sync_config, sample_ofx):
    directory = sync_config.input.transaction_dir / "Household" / "Chequing"
    directory.mkdir(parents=True)
    path = directory / "nov.qfx"
    path.write_text(sample_ofx)

    with pytest.raises(PathResolutionError):
        importer.import_file(path)
    assert fake_client.submissions == []


def test_file_outside_transaction_dir_is_rejected_before_any_network_call(
    importer, fake_client, tmp_path, sample_ofx
):
    path = tmp_path / "elsewhere" / "nov.qfx"
    path.parent.mkdir()
    path.write_text(sample_ofx)

    with pytest.raises(PathResolutionError):
        importer.import_file(path)
    assert fake_client.submissions == []


def test_format_error_aborts_before_submission(importer, fake_client, store, statement_path):
    statement_path.write_text("not a statement")

    with pytest.raises(NotOFXDocumentError):
        importer.import_file(statement_path)
    assert fake_client.submissions == []
    assert store.import_history() == []


def test_incomplete_import_is_logged(importer, fake_client, store, statement_path):
    fake_client.script = [always_duplicate] * 10

    with pytest.raises(ImportIncompleteError):
        importer.import_file(statement_path)

    [entry] = store.import_history()
    assert entry.status == "incomplete"
    assert entry.import_ids == []


def test_plan_file_makes_no_remote_calls(importer, fake_client, statement_path):
    batch = importer.plan_file(statement_path)

    assert len(batch.pending) == 4
    assert fake_client.submissions == []


def test_import_files_reports_each_file(importer, sync_config, statement_path):
    broken = statement_path.parent / "broken.qfx"
    broken.write_text(make_statement("<TRNTYPE>WHAT<DTPOSTED>20241101120000<TRNAMT>-1"))

    reports = importer.import_files([statement_path, broken])

    assert [r.succeeded for r in reports] == [True, False]
    assert "WHAT" in reports[1].error


def test_import_files_collects_unresolved(importer, fake_client, statement_path):
    fake_client.script = [always_duplicate] * 10

    [report] = importer.import_files([statement_path])

    assert not report.succeeded
    assert len(report.unresolved) == 4


def test_import_files_keeps_progress_of_incomplete_import(
    importer, fake_client, store, statement_path
):
    def create_parking_only(transactions):
        return SubmitResult(
            created_import_ids=[t.import_id for t in transactions if t.amount == -500],
            duplicate_import_ids=[t.import_id for t in transactions if t.amount != -500],
        )

    fake_client.script = [create_parking_only] * 10

    [report] = importer.import_files([statement_path])

    assert not report.succeeded
    assert report.account.label == "Household/Credit Card"
    assert report.parsed_count == 4
    assert [e.import_id for e in report.committed] == ["YNAB:2024-11-15:-500:1"]
    assert len(report.unresolved) == 3
    assert report.finished_at is not None
    assert store.exists(report.account.account_id, -500, date(2024, 11, 15))
