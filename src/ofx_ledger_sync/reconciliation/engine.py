"""
Idempotent reconciliation engine.
Turns parsed statement records into ledger submissions and drives the
duplicate-resolution retry loop until every transaction is accounted for.
"""

from dataclasses import replace
from datetime import datetime
from typing import Sequence
import logging

from ..client.base import RemoteLedgerClient
from ..config import ReconciliationSettings
from ..models.batch import (
    BatchEntry,
    ImportBatch,
    ReconciliationResult,
    ReconciliationState,
)
from ..models.transaction import (
    LedgerAccount,
    NewTransaction,
    RawTransaction,
    SubmitResult,
    TransactionKey,
)
from ..storage.ledger_store import LedgerStore
from ..utils.exceptions import (
    ImportIncompleteError,
    ReconciliationError,
    TransientNetworkError,
)
from .keys import IdempotencyKeyBuilder, to_minor_units

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Delivers one file's transactions to the remote ledger exactly once.

    Collecting skips anything the local ledger already records, then each
    submission round sends the whole pending queue. Created transactions are
    committed locally; import ids the remote reports as duplicates get the
    next free occurrence and go into the following round. The number of
    rounds is capped by ``settings.max_rounds``.
    """

    def __init__(
        self,
        settings: ReconciliationSettings,
        client: RemoteLedgerClient,
        store: LedgerStore,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            settings: Import id namespace, round ceiling and cleared status
            client: Remote ledger client
            store: Local ledger of already delivered transactions
        """
        self.settings = settings
        self.client = client
        self.store = store
        self.keys = IdempotencyKeyBuilder(settings.import_id_namespace)

    def plan(
        self, account: LedgerAccount, transactions: Sequence[RawTransaction]
    ) -> ImportBatch:
        """
        Run the collecting step only.

        Args:
            account: Destination account
            transactions: Parsed transactions in file order

        Returns:
            Batch with every new transaction queued under its import id
        """
        batch = ImportBatch(account)

        for raw in transactions:
            amount_minor_units = to_minor_units(raw.amount)
            if self.store.exists(account.account_id, amount_minor_units, raw.posted_date):
                logger.info(
                    f"Transaction of {raw.amount} on {raw.posted_date} already imported "
                    f"to {account.label}, skipping"
                )
                batch.skipped.append(raw)
                continue

            key = self.keys.next_key(raw.posted_date, amount_minor_units, batch)
            batch.add(BatchEntry(key=key, transaction=self._new_transaction(account, raw, key), raw=raw))

        logger.debug(
            f"Collected {len(batch.pending)} new and {len(batch.skipped)} already imported "
            f"transactions for {account.label}"
        )
        return batch

    def reconcile(
        self, account: LedgerAccount, transactions: Sequence[RawTransaction]
    ) -> ReconciliationResult:
        """
        Deliver transactions to the remote ledger.

        Args:
            account: Destination account
            transactions: Parsed transactions in file order

        Returns:
            Result in the DONE state

        Raises:
            ImportIncompleteError: If transactions are still unresolved when
                the round ceiling is reached
            ReconciliationError: If the remote reports import ids this batch
                never assigned; known creates in that response are committed
                first
            PersistenceError: If the local ledger cannot be written
        """
        start_time = datetime.now()
        logger.info(f"Starting reconciliation of {len(transactions)} transactions for {account.label}")

        batch = self.plan(account, transactions)
        transaction_ids: list[str] = []

        while batch.pending:
            submission = batch.pending_entries()
            batch.rounds += 1
            batch.state = ReconciliationState.SUBMITTING
            for entry in submission:
                entry.round = batch.rounds

            logger.debug(f"Round {batch.rounds}: submitting {len(submission)} transactions")
            try:
                result = self.client.submit(
                    account.budget_id,
                    account.account_id,
                    [entry.transaction for entry in submission],
                )
            except TransientNetworkError as e:
                logger.warning(f"Round {batch.rounds} failed with a transient error: {e}")
                self._fail_if_exhausted(batch, submission)
                batch.state = ReconciliationState.RETRYING
                continue

            batch.state = ReconciliationState.AWAITING_REMOTE_RESULT
            transaction_ids.extend(result.transaction_ids)

            # Known creates are recorded even when the response is rejected below
            self._commit(batch, result)
            self._validate_result(batch, result)
            batch.pending = self._requeue(batch, submission, result)

        batch.state = ReconciliationState.DONE
        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s after {batch.rounds} round(s): "
            f"{len(batch.committed)} created, {len(batch.skipped)} already imported"
        )

        return ReconciliationResult(
            account=account,
            state=batch.state,
            rounds=batch.rounds,
            committed=batch.committed_entries(),
            skipped=list(batch.skipped),
            transaction_ids=transaction_ids,
        )

    def _new_transaction(
        self, account: LedgerAccount, raw: RawTransaction, key: TransactionKey
    ) -> NewTransaction:
        return NewTransaction(
            account_id=account.account_id,
            date=key.date,
            amount=key.amount_minor_units,
            import_id=self.keys.import_id(key),
            payee_name=raw.payee_name,
            memo=raw.memo,
            cleared=self.settings.cleared_status,
        )

    def _validate_result(self, batch: ImportBatch, result: SubmitResult) -> None:
        """Reject responses that mention import ids this batch never assigned."""
        unknown = [
            import_id
            for import_id in [*result.created_import_ids, *result.duplicate_import_ids]
            if import_id not in batch
        ]
        if unknown:
            batch.state = ReconciliationState.FAILED
            raise ReconciliationError(
                f"Remote ledger reported import ids that were never submitted: {', '.join(unknown)}"
            )

    def _commit(self, batch: ImportBatch, result: SubmitResult) -> None:
        """Record every created transaction this batch assigned in the local ledger."""
        batch.state = ReconciliationState.COMMITTING
        for import_id in result.created_import_ids:
            if import_id in batch.committed or import_id not in batch:
                continue
            entry = batch.entries[import_id]
            inserted = self.store.insert_if_absent(
                batch.account.account_id, entry.key.amount_minor_units, entry.key.date
            )
            batch.committed.append(import_id)
            logger.info(
                f"Created {import_id} ({entry.raw.payee_name or 'no payee'})"
                + ("" if inserted else "; local record already present")
            )

    def _requeue(
        self,
        batch: ImportBatch,
        submission: list[BatchEntry],
        result: SubmitResult,
    ) -> list[str]:
        """
        Build the next round's queue from the entries the remote did not create.

        Duplicates move to their next free occurrence; entries the remote
        neither created nor flagged are resubmitted unchanged. Source order is
        preserved.
        """
        created = set(result.created_import_ids)
        duplicates = set(result.duplicate_import_ids)
        rejected = [entry for entry in submission if entry.import_id not in created]
        if not rejected:
            return []

        self._fail_if_exhausted(batch, rejected)
        batch.state = ReconciliationState.RETRYING

        queue: list[str] = []
        for entry in rejected:
            if entry.import_id not in duplicates:
                logger.warning(f"Remote did not acknowledge {entry.import_id}; resubmitting")
                queue.append(entry.import_id)
                continue

            key = self.keys.bump(entry.key, batch)
            bumped = BatchEntry(
                key=key,
                transaction=replace(entry.transaction, import_id=self.keys.import_id(key)),
                raw=entry.raw,
            )
            batch.add(bumped, queue=False)
            queue.append(bumped.import_id)
            logger.info(f"Remote already holds {entry.import_id}; retrying as {bumped.import_id}")

        return queue

    def _fail_if_exhausted(self, batch: ImportBatch, unresolved: list[BatchEntry]) -> None:
        if batch.rounds < self.settings.max_rounds:
            return
        batch.state = ReconciliationState.FAILED
        for entry in unresolved:
            logger.error(
                f"Unresolved after {batch.rounds} rounds: {entry.import_id} "
                f"{entry.raw.amount} {entry.raw.payee_name or ''}".rstrip()
            )
        raise ImportIncompleteError(unresolved, batch.rounds, batch.committed_entries())
