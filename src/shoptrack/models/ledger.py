"""Data contracts shared by the unit ledger and its callers."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from shoptrack.models.shopping import ShoppingItem


class MoveMode(str, Enum):
    ONE = "one"
    ALL = "all"


class UnitTracking(str, Enum):
    """Whether the item table carries the per-unit bucket columns."""

    ENABLED = "enabled"
    LEGACY = "legacy"


class LegacyShape(str, Enum):
    """Which pre-unit revision a legacy table corresponds to."""

    TOGGLE = "toggle"
    STATUS = "status"


class SchemaCapabilities(BaseModel):
    """Columns detected on ``shopping_items`` for the current database."""

    has_status_column: bool
    has_unit_columns: bool

    model_config = ConfigDict(frozen=True)

    @property
    def unit_tracking(self) -> UnitTracking:
        return UnitTracking.ENABLED if self.has_unit_columns else UnitTracking.LEGACY

    @property
    def legacy_shape(self) -> LegacyShape:
        return LegacyShape.STATUS if self.has_status_column else LegacyShape.TOGGLE


class LedgerErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INVARIANT_VIOLATION = "invariant_violation"
    NO_UNITS_AVAILABLE = "no_units_available"
    UNIT_TRACKING_UNAVAILABLE = "unit_tracking_unavailable"
    PERSISTENCE_ERROR = "persistence_error"


class LedgerResult(BaseModel):
    """Outcome of a ledger operation: the fresh item snapshot or a tagged error."""

    ok: bool
    item: Optional[ShoppingItem] = None
    error: Optional[LedgerErrorKind] = None
    message: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def success(cls, item: ShoppingItem) -> "LedgerResult":
        return cls(ok=True, item=item)

    @classmethod
    def failure(cls, error: LedgerErrorKind, message: str) -> "LedgerResult":
        return cls(ok=False, error=error, message=message)


__all__ = [
    "MoveMode",
    "UnitTracking",
    "LegacyShape",
    "SchemaCapabilities",
    "LedgerErrorKind",
    "LedgerResult",
]
