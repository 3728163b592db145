"""
Per-file import orchestration: resolve the account, parse, reconcile, log.
"""

from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional
import logging

from .client.base import RemoteLedgerClient
from .config import SyncConfig
from .models.batch import ImportBatch
from .models.transaction import ImportReport, LedgerAccount
from .parsers.ofx_parser import OFXParser
from .paths import parse_account_spec, resolve_budget_and_account
from .reconciliation.engine import ReconciliationEngine
from .storage.ledger_store import LedgerStore
from .utils.exceptions import (
    ImportIncompleteError,
    LedgerSyncError,
    PathResolutionError,
)

logger = logging.getLogger(__name__)


class StatementImporter:
    """Imports statement export files into their remote accounts."""

    def __init__(
        self,
        config: SyncConfig,
        client: RemoteLedgerClient,
        store: LedgerStore,
        parser: Optional[OFXParser] = None,
    ):
        self.config = config
        self.client = client
        self.store = store
        self.parser = parser or OFXParser(config)
        self.engine = ReconciliationEngine(config.reconciliation, client, store)

    def resolve_account(self, path: Path, account_spec: Optional[str] = None) -> LedgerAccount:
        """
        Find the destination account for a file.

        Args:
            path: Statement file path
            account_spec: Explicit ``BUDGET/ACCOUNT``; otherwise the names are
                taken from the file's location under ``input.transaction_dir``

        Raises:
            PathResolutionError: If the account cannot be determined or is not
                registered locally
        """
        if account_spec:
            budget_name, account_name = parse_account_spec(account_spec)
        else:
            base_dir = self.config.input.transaction_dir
            if base_dir is None:
                raise PathResolutionError(
                    "No input.transaction_dir configured; pass the account explicitly"
                )
            budget_name, account_name = resolve_budget_and_account(base_dir, path)

        account = self.store.find_account(budget_name, account_name)
        if account is None:
            raise PathResolutionError(
                f"Unknown account {budget_name}/{account_name}; run setup to register it"
            )
        return account

    def plan_file(self, path: Path, account_spec: Optional[str] = None) -> ImportBatch:
        """Parse a file and collect what would be submitted, without any network call."""
        account = self.resolve_account(path, account_spec)
        return self.engine.plan(account, self.parser.parse_file(path))

    def import_file(self, path: Path, account_spec: Optional[str] = None) -> ImportReport:
        """
        Import one statement file.

        Parse errors abort before any network call; nothing is committed.

        Args:
            path: Statement file path
            account_spec: Optional explicit ``BUDGET/ACCOUNT``

        Returns:
            Report of the completed import

        Raises:
            LedgerSyncError: Any failure; an incomplete import is written to
                the import log before being raised
        """
        report = ImportReport(file_path=path, account=None)
        self._import_into(report, account_spec)
        return report

    def import_files(
        self, paths: Iterable[Path], account_spec: Optional[str] = None
    ) -> list[ImportReport]:
        """
        Import files one after another; a failing file is reported and skipped.

        Returns:
            One report per file, failures carrying their error message along
            with the account, parsed count and created entries known so far
        """
        reports: list[ImportReport] = []
        for path in paths:
            report = ImportReport(file_path=path, account=None)
            try:
                self._import_into(report, account_spec)
            except ImportIncompleteError as e:
                logger.error(f"Import of {path} incomplete: {e}")
                report.error = str(e)
            except (LedgerSyncError, OSError) as e:
                logger.error(f"Import of {path} failed: {e}")
                report.error = str(e)
                report.finished_at = datetime.now()
            reports.append(report)
        return reports

    def _import_into(self, report: ImportReport, account_spec: Optional[str]) -> None:
        """Run one import, filling ``report`` as each stage completes."""
        path = report.file_path
        account = self.resolve_account(path, account_spec)
        report.account = account

        transactions = self.parser.parse_file(path)
        report.parsed_count = len(transactions)

        try:
            result = self.engine.reconcile(account, transactions)
        except ImportIncompleteError as e:
            report.committed = list(e.committed)
            report.unresolved = list(e.unresolved)
            report.finished_at = datetime.now()
            self.store.log_import(
                account,
                path.name,
                [entry.import_id for entry in e.committed],
                status="incomplete",
            )
            raise

        report.result = result
        report.committed = list(result.committed)
        report.finished_at = datetime.now()
        self.store.log_import(account, path.name, result.import_ids, status="done")
        logger.info(
            f"Imported {path.name} into {account.label}: {result.created_count} created, "
            f"{len(result.skipped)} already imported"
        )
