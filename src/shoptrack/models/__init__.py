"""Pydantic models defining shared data contracts."""

from shoptrack.models.gallery import GalleryItem
from shoptrack.models.ledger import (
    LedgerErrorKind,
    LedgerResult,
    LegacyShape,
    MoveMode,
    SchemaCapabilities,
    UnitTracking,
)
from shoptrack.models.shopping import (
    STAGE_ORDER,
    ItemStatus,
    Priority,
    ShoppingItem,
    ShoppingList,
    ShoppingListDetail,
    ShoppingListSummary,
    UnitCounts,
)

__all__ = [
    "GalleryItem",
    "LedgerErrorKind",
    "LedgerResult",
    "LegacyShape",
    "MoveMode",
    "SchemaCapabilities",
    "UnitTracking",
    "STAGE_ORDER",
    "ItemStatus",
    "Priority",
    "ShoppingItem",
    "ShoppingList",
    "ShoppingListDetail",
    "ShoppingListSummary",
    "UnitCounts",
]
