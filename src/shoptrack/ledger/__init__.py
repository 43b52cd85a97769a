"""Unit ledger: per-unit fulfillment tracking for shopping items."""

from shoptrack.ledger.service import UnitLedger
from shoptrack.ledger.units import (
    NoUnitsAvailableError,
    UnitSumMismatchError,
    derive_completed,
    derive_primary_status,
    legacy_advance,
    move,
    next_stage,
    reconcile_quantity,
)

__all__ = [
    "UnitLedger",
    "NoUnitsAvailableError",
    "UnitSumMismatchError",
    "derive_completed",
    "derive_primary_status",
    "legacy_advance",
    "move",
    "next_stage",
    "reconcile_quantity",
]
