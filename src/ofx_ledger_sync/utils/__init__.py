"""Utility modules."""

from .exceptions import (
    LedgerSyncError,
    FormatError,
    NotOFXDocumentError,
    UnknownTransactionKindError,
    BadTimestampError,
    BadAmountError,
    MissingFieldError,
    PathResolutionError,
    RemoteLedgerError,
    TransientNetworkError,
    PersistenceError,
    ReconciliationError,
    ImportIncompleteError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "LedgerSyncError",
    "FormatError",
    "NotOFXDocumentError",
    "UnknownTransactionKindError",
    "BadTimestampError",
    "BadAmountError",
    "MissingFieldError",
    "PathResolutionError",
    "RemoteLedgerError",
    "TransientNetworkError",
    "PersistenceError",
    "ReconciliationError",
    "ImportIncompleteError",
    "ConfigurationError",
    "ReportGenerationError",
    "setup_logging",
    "get_logger",
]
