"""Custom exceptions for the ledger sync application."""

from typing import Any, Optional


class LedgerSyncError(Exception):
    """Base exception for ledger sync errors."""

    pass


class FormatError(LedgerSyncError):
    """Malformed statement export; the file is left unprocessed."""

    pass


class NotOFXDocumentError(FormatError):
    """The input has no <OFX> root marker."""

    pass


class UnknownTransactionKindError(FormatError):
    """A TRNTYPE code outside the known code table."""

    def __init__(self, code: str):
        super().__init__(f"Unknown transaction type code: {code!r}")
        self.code = code


class BadTimestampError(FormatError):
    """A timestamp that matches neither the offset-aware nor the naive shape."""

    def __init__(self, raw: str):
        super().__init__(f"Failed to parse timestamp: {raw!r}")
        self.raw = raw


class BadAmountError(FormatError):
    """A TRNAMT value that is not a decimal number."""

    def __init__(self, raw: str):
        super().__init__(f"Failed to parse amount: {raw!r}")
        self.raw = raw


class MissingFieldError(FormatError):
    """A required transaction field is absent."""

    def __init__(self, field: str):
        super().__init__(f"Transaction is missing required field <{field}>")
        self.field = field


class PathResolutionError(LedgerSyncError):
    """File location cannot be mapped to a known budget/account."""

    pass


class RemoteLedgerError(LedgerSyncError):
    """The remote ledger rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(RemoteLedgerError):
    """A remote call failed in a way that is safe to retry."""

    pass


class PersistenceError(LedgerSyncError):
    """Local ledger store is unreachable or failed a write."""

    pass


class ReconciliationError(LedgerSyncError):
    """The remote answered with data the import batch cannot account for."""

    pass


class ImportIncompleteError(ReconciliationError):
    """Retry rounds were exhausted with transactions still unresolved."""

    def __init__(self, unresolved: list[Any], rounds: int, committed: Optional[list[Any]] = None):
        super().__init__(
            f"{len(unresolved)} transaction(s) were not imported after {rounds} round(s): "
            + ", ".join(entry.import_id for entry in unresolved)
        )
        self.unresolved = unresolved
        self.rounds = rounds
        self.committed = committed or []


class ConfigurationError(LedgerSyncError):
    """Error in configuration."""

    pass


class ReportGenerationError(LedgerSyncError):
    """Error generating Excel report."""

    pass
