"""
Idempotency keys for ledger submissions.

Every submitted transaction carries an import id derived only from its date,
its amount in minor units and an occurrence counter, so the same statement
line yields the same id in any process on any run.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Container

from ..models.transaction import TransactionKey, format_import_id

MINOR_UNITS_PER_MAJOR = 1000


def to_minor_units(amount: Decimal) -> int:
    """
    Convert a decimal amount to thousandths of the major unit.

    Rounds half away from zero: ``Decimal("0.0005")`` becomes 1 and
    ``Decimal("-0.0005")`` becomes -1.
    """
    scaled = Decimal(amount) * MINOR_UNITS_PER_MAJOR
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class IdempotencyKeyBuilder:
    """Assigns occurrences so that import ids never collide within a working set."""

    def __init__(self, namespace: str = "YNAB"):
        self.namespace = namespace

    def import_id(self, key: TransactionKey) -> str:
        return key.import_id(self.namespace)

    def next_key(
        self,
        posted: date,
        amount_minor_units: int,
        taken: Container[str],
        start: int = 1,
    ) -> TransactionKey:
        """
        Return the key with the smallest occurrence >= ``start`` that is free.

        Args:
            posted: Posted calendar date
            amount_minor_units: Amount in thousandths
            taken: Import ids already assigned (current batch plus retry history)
            start: Lowest occurrence to consider

        Returns:
            A key whose import id is not in ``taken``
        """
        occurrence = max(start, 1)
        while format_import_id(self.namespace, posted, amount_minor_units, occurrence) in taken:
            occurrence += 1
        return TransactionKey(posted, amount_minor_units, occurrence)

    def bump(self, key: TransactionKey, taken: Container[str]) -> TransactionKey:
        """Return the next free key above ``key`` for a remote-reported duplicate."""
        return self.next_key(key.date, key.amount_minor_units, taken, start=key.occurrence + 1)


__all__ = [
    "MINOR_UNITS_PER_MAJOR",
    "IdempotencyKeyBuilder",
    "format_import_id",
    "to_minor_units",
]
