"""Reconciliation engine and idempotency keys."""

from .engine import ReconciliationEngine
from .keys import IdempotencyKeyBuilder, format_import_id, to_minor_units

__all__ = [
    "ReconciliationEngine",
    "IdempotencyKeyBuilder",
    "format_import_id",
    "to_minor_units",
]
