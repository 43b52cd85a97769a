"""Shopping list and item models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ItemStatus(str, Enum):
    """Fulfillment stage of a unit (and the display status of an item)."""

    PENDING = "pending"
    DONE = "done"
    SHIPPED = "shipped"
    SUCCESS = "success"
    FAILED = "failed"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Pipeline order; later stages win ties when deriving the primary status.
STAGE_ORDER: tuple[ItemStatus, ...] = (
    ItemStatus.PENDING,
    ItemStatus.DONE,
    ItemStatus.SHIPPED,
    ItemStatus.SUCCESS,
    ItemStatus.FAILED,
)


class UnitCounts(BaseModel):
    """Breakdown of an item's quantity across the five status buckets."""

    pending: int = Field(default=0, ge=0)
    done: int = Field(default=0, ge=0)
    shipped: int = Field(default=0, ge=0)
    success: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def all_in(cls, status: ItemStatus, quantity: int) -> "UnitCounts":
        """Return counts with every unit placed in ``status``."""

        return cls(**{status.value: quantity})

    @property
    def total(self) -> int:
        return self.pending + self.done + self.shipped + self.success + self.failed

    def get(self, status: ItemStatus) -> int:
        return getattr(self, ItemStatus(status).value)

    def as_dict(self) -> dict[str, int]:
        return {stage.value: self.get(stage) for stage in STAGE_ORDER}


class ShoppingItem(BaseModel):
    """Single item on a shopping list.

    ``units`` is ``None`` for rows read from a schema without unit columns.
    ``status`` is kept as the raw stored string so unrecognised legacy values
    survive a round trip.
    """

    id: int
    list_id: int
    name: str
    quantity: int = Field(ge=1)
    category: str = Field(default="Other")
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Priority = Field(default=Priority.MEDIUM)
    image_url: Optional[str] = Field(default=None)
    quality: Optional[str] = Field(default=None)
    status: str = Field(default=ItemStatus.PENDING.value)
    completed: bool = Field(default=False)
    units: Optional[UnitCounts] = Field(default=None)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class ShoppingList(BaseModel):
    """Named list owned by a single user."""

    id: int
    user_id: str
    name: str
    store: str
    location: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class ShoppingListSummary(ShoppingList):
    """List row with read-side item aggregation."""

    item_count: int = 0
    completed_count: int = 0


class ShoppingListDetail(ShoppingList):
    """List together with its items in creation order."""

    items: list[ShoppingItem] = Field(default_factory=list)


__all__ = [
    "ItemStatus",
    "Priority",
    "STAGE_ORDER",
    "UnitCounts",
    "ShoppingItem",
    "ShoppingList",
    "ShoppingListSummary",
    "ShoppingListDetail",
]
