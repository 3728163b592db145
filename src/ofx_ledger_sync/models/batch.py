"""Per-file reconciliation state: the import batch and its result."""

from dataclasses import dataclass, field
from enum import Enum

from .transaction import LedgerAccount, NewTransaction, RawTransaction, TransactionKey


class ReconciliationState(Enum):
    """States of one file's reconciliation."""

    COLLECTING = "collecting"
    SUBMITTING = "submitting"
    AWAITING_REMOTE_RESULT = "awaiting_remote_result"
    COMMITTING = "committing"
    RETRYING = "retrying"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BatchEntry:
    """One import id assignment for a raw transaction."""

    key: TransactionKey
    transaction: NewTransaction
    raw: RawTransaction
    round: int = 0  # submission round that last carried this entry

    @property
    def import_id(self) -> str:
        return self.transaction.import_id


class ImportBatch:
    """
    Ordered mapping from import id to batch entry for one file.

    ``entries`` keeps every id ever assigned, including ids abandoned after a
    duplicate report, so it doubles as the retry history that new
    occurrences are checked against. ``pending`` holds the ids queued for the
    next submission round, in source order.
    """

    def __init__(self, account: LedgerAccount):
        self.account = account
        self.entries: dict[str, BatchEntry] = {}
        self.pending: list[str] = []
        self.committed: list[str] = []
        self.skipped: list[RawTransaction] = []
        self.state = ReconciliationState.COLLECTING
        self.rounds = 0

    def __contains__(self, import_id: str) -> bool:
        return import_id in self.entries

    def add(self, entry: BatchEntry, queue: bool = True) -> None:
        """Register an assigned entry, queueing it for the next round unless told not to."""
        if entry.import_id in self.entries:
            raise ValueError(f"Import id already assigned in this batch: {entry.import_id}")
        self.entries[entry.import_id] = entry
        if queue:
            self.pending.append(entry.import_id)

    def pending_entries(self) -> list[BatchEntry]:
        return [self.entries[import_id] for import_id in self.pending]

    def committed_entries(self) -> list[BatchEntry]:
        return [self.entries[import_id] for import_id in self.committed]


@dataclass
class ReconciliationResult:
    """Summary of a completed reconciliation."""

    account: LedgerAccount
    state: ReconciliationState
    rounds: int
    committed: list[BatchEntry] = field(default_factory=list)
    skipped: list[RawTransaction] = field(default_factory=list)
    transaction_ids: list[str] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.committed)

    @property
    def import_ids(self) -> list[str]:
        return [entry.import_id for entry in self.committed]
