"""Data models for statement import and ledger reconciliation."""

from .transaction import (
    TransactionKind,
    RawTransaction,
    TransactionKey,
    NewTransaction,
    SubmitResult,
    RemoteTransaction,
    RemoteAccount,
    RemoteBudget,
    LedgerAccount,
    ImportReport,
    format_import_id,
)
from .batch import (
    ReconciliationState,
    BatchEntry,
    ImportBatch,
    ReconciliationResult,
)

__all__ = [
    "TransactionKind",
    "RawTransaction",
    "TransactionKey",
    "NewTransaction",
    "SubmitResult",
    "RemoteTransaction",
    "RemoteAccount",
    "RemoteBudget",
    "LedgerAccount",
    "ImportReport",
    "format_import_id",
    "ReconciliationState",
    "BatchEntry",
    "ImportBatch",
    "ReconciliationResult",
]
