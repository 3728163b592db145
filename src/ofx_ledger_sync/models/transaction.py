"""Data models for parsed statement records and ledger submissions."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

# Remote field limits; longer values are rejected by the ledger API
MAX_PAYEE_NAME_LENGTH = 200
MAX_MEMO_LENGTH = 500


class TransactionKind(Enum):
    """OFX TRNTYPE code table."""

    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    INT = "INT"  # Interest earned or paid
    DIV = "DIV"  # Dividend
    FEE = "FEE"
    SRVCHG = "SRVCHG"  # Service charge
    DEP = "DEP"  # Deposit
    ATM = "ATM"
    POS = "POS"  # Point of sale
    XFER = "XFER"  # Transfer
    CHECK = "CHECK"
    PAYMENT = "PAYMENT"
    CASH = "CASH"
    DIRECTDEP = "DIRECTDEP"
    DIRECTDEBIT = "DIRECTDEBIT"
    REPEATPMT = "REPEATPMT"
    HOLD = "HOLD"
    OTHER = "OTHER"


@dataclass(frozen=True)
class RawTransaction:
    """
    One STMTTRN element as read from a statement export.

    Produced once by the parser and consumed once by the reconciliation
    engine. ``payee_name`` and ``memo`` are None when the element omits them.
    """

    kind: TransactionKind
    posted_date: date
    amount: Decimal
    payee_name: Optional[str] = None
    memo: Optional[str] = None


@dataclass(frozen=True)
class TransactionKey:
    """
    Identity of one transaction instance within a reconciliation batch.

    The same (date, amount_minor_units) pair may repeat; ``occurrence``
    disambiguates the instances, starting at 1.
    """

    date: date
    amount_minor_units: int
    occurrence: int = 1

    def import_id(self, namespace: str) -> str:
        """Derive the wire import id, e.g. ``YNAB:2024-11-16:-7880:1``."""
        return format_import_id(namespace, self.date, self.amount_minor_units, self.occurrence)


def format_import_id(namespace: str, posted: date, amount_minor_units: int, occurrence: int) -> str:
    """Build ``<namespace>:<isoDate>:<amountMinorUnits>:<occurrence>``."""
    if occurrence < 1:
        raise ValueError(f"occurrence must be >= 1, got {occurrence}")
    return f"{namespace}:{posted.isoformat()}:{amount_minor_units}:{occurrence}"


@dataclass
class NewTransaction:
    """A transaction ready to be created in the remote ledger."""

    account_id: str
    date: date
    amount: int  # minor units (thousandths)
    import_id: str
    payee_name: Optional[str] = None
    memo: Optional[str] = None
    cleared: str = "cleared"

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for one transaction of a bulk create request."""
        return {
            "account_id": self.account_id,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "payee_name": _truncate(self.payee_name, MAX_PAYEE_NAME_LENGTH),
            "memo": _truncate(self.memo, MAX_MEMO_LENGTH),
            "cleared": self.cleared,
            "import_id": self.import_id,
        }


def _truncate(value: Optional[str], limit: int) -> Optional[str]:
    if value is None:
        return None
    return value[:limit]


@dataclass
class SubmitResult:
    """Outcome of one bulk create request."""

    transaction_ids: list[str] = field(default_factory=list)
    created_import_ids: list[str] = field(default_factory=list)
    duplicate_import_ids: list[str] = field(default_factory=list)


@dataclass
class RemoteTransaction:
    """A transaction as listed by the remote ledger."""

    id: str
    date: date
    amount: int  # minor units
    import_id: Optional[str] = None
    deleted: bool = False


@dataclass
class RemoteAccount:
    """An account inside a remote budget."""

    id: str
    name: str
    closed: bool = False
    deleted: bool = False


@dataclass
class RemoteBudget:
    """A remote budget with its accounts."""

    id: str
    name: str
    accounts: list[RemoteAccount] = field(default_factory=list)


@dataclass(frozen=True)
class LedgerAccount:
    """A remote account registered in the local store."""

    account_id: str
    name: str
    budget_id: str
    budget_name: str

    @property
    def label(self) -> str:
        return f"{self.budget_name}/{self.name}"


@dataclass
class ImportReport:
    """Outcome of importing one statement file."""

    file_path: Path
    account: Optional[LedgerAccount]
    parsed_count: int = 0
    result: Optional[Any] = None  # ReconciliationResult
    committed: list[Any] = field(default_factory=list)  # BatchEntry, also set on incomplete imports
    unresolved: list[Any] = field(default_factory=list)  # BatchEntry
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.result is not None
