"""Local ledger persistence."""

from .ledger_store import ImportLogEntry, LedgerStore

__all__ = ["ImportLogEntry", "LedgerStore"]
