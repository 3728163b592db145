"""Remote ledger clients."""

from .base import RemoteLedgerClient
from .ynab_client import YNABClient

__all__ = ["RemoteLedgerClient", "YNABClient"]
