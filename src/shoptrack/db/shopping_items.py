"""Shopping item persistence helpers.

Reads and writes name their columns explicitly so the same code runs against
every generation of the ``shopping_items`` table; callers pass the
:class:`SchemaCapabilities` probed for the current transaction.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import ColumnElement, delete, insert, select, update
from sqlalchemy.orm import Session

from shoptrack.models.ledger import SchemaCapabilities
from shoptrack.models.shopping import ItemStatus, Priority, ShoppingItem, UnitCounts

from .models import ShoppingItemORM, ShoppingListORM
from .repository import session_scope
from .schema import UNIT_COLUMNS, probe_capabilities

logger = logging.getLogger(__name__)

_UNSET = object()

_BASE_COLUMNS = (
    "id",
    "list_id",
    "name",
    "quantity",
    "category",
    "notes",
    "priority",
    "image_url",
    "quality",
    "completed",
    "created_at",
    "updated_at",
)

EDITABLE_FIELDS = frozenset({"name", "category", "notes", "priority", "image_url", "quality"})
_IMMUTABLE_COLUMNS = frozenset({"id", "list_id", "created_at", "updated_at"})

_items = ShoppingItemORM.__table__


class InvalidItemFieldError(ValueError):
    """Raised when an item field edit carries a value the column cannot hold."""


def normalize_item_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Clean descriptive field edits the same way for every write path.

    Names are stripped and must not be blank, an empty category falls back to
    ``"Other"``, empty optional text becomes ``None`` and priorities must be a
    known :class:`Priority`.
    """

    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise InvalidItemFieldError(f"Unsupported item field(s): {', '.join(sorted(unknown))}")

    normalized: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "name":
            name = (value or "").strip()
            if not name:
                raise InvalidItemFieldError("Item name must not be blank")
            normalized[key] = name
        elif key == "category":
            normalized[key] = (value or "").strip() or "Other"
        elif key == "priority":
            if value is None:
                raise InvalidItemFieldError("Item priority must not be null")
            try:
                normalized[key] = Priority(value).value
            except ValueError as exc:
                raise InvalidItemFieldError(str(exc)) from exc
        else:
            normalized[key] = value or None
    return normalized


def _selected_columns(capabilities: SchemaCapabilities) -> list:
    names = list(_BASE_COLUMNS)
    if capabilities.has_status_column:
        names.append("status")
    if capabilities.has_unit_columns:
        names.extend(UNIT_COLUMNS.values())
    return [_items.c[name] for name in names]


def owned_by(user_id: str) -> ColumnElement[bool]:
    """Predicate restricting item rows to lists owned by ``user_id``."""

    owned_lists = select(ShoppingListORM.id).where(ShoppingListORM.user_id == user_id)
    return ShoppingItemORM.list_id.in_(owned_lists)


def _known_status(raw: Optional[str]) -> Optional[ItemStatus]:
    try:
        return ItemStatus(raw)
    except ValueError:
        return None


def _to_model(row: Mapping[str, Any], capabilities: SchemaCapabilities) -> ShoppingItem:
    completed = bool(row["completed"])
    if capabilities.has_status_column:
        status = row["status"] or ItemStatus.PENDING.value
    else:
        status = (ItemStatus.DONE if completed else ItemStatus.PENDING).value

    units: Optional[UnitCounts] = None
    if capabilities.has_unit_columns:
        raw_counts = {stage.value: row[column] for stage, column in UNIT_COLUMNS.items()}
        if any(value is None for value in raw_counts.values()):
            # Row written before the unit columns were populated.
            seed_stage = _known_status(status) or ItemStatus.PENDING
            units = UnitCounts.all_in(seed_stage, row["quantity"])
        else:
            units = UnitCounts(**raw_counts)

    return ShoppingItem.model_validate(
        {
            "id": row["id"],
            "list_id": row["list_id"],
            "name": row["name"],
            "quantity": row["quantity"],
            "category": row["category"],
            "notes": row["notes"],
            "priority": row["priority"],
            "image_url": row["image_url"],
            "quality": row["quality"],
            "status": status,
            "completed": completed,
            "units": units,
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
    )


def find_item_for_owner(
    session: Session,
    item_id: int,
    user_id: str,
    capabilities: SchemaCapabilities,
) -> Optional[ShoppingItem]:
    """Load an item visible to ``user_id``; ``None`` when missing or not owned."""

    row = (
        session.execute(
            select(*_selected_columns(capabilities)).where(
                ShoppingItemORM.id == item_id,
                owned_by(user_id),
            )
        )
        .mappings()
        .first()
    )
    if row is None:
        return None
    return _to_model(row, capabilities)


def list_items_for_list(
    session: Session,
    list_id: int,
    capabilities: SchemaCapabilities,
) -> List[ShoppingItem]:
    rows = (
        session.execute(
            select(*_selected_columns(capabilities))
            .where(ShoppingItemORM.list_id == list_id)
            .order_by(ShoppingItemORM.created_at.asc(), ShoppingItemORM.id.asc())
        )
        .mappings()
        .all()
    )
    return [_to_model(row, capabilities) for row in rows]


def update_item_units(
    session: Session,
    item_id: int,
    user_id: str,
    counts: UnitCounts,
    status: ItemStatus,
    completed: bool,
) -> int:
    """Write the unit buckets and derived fields in one ownership-scoped UPDATE."""

    values: dict[str, Any] = {
        UNIT_COLUMNS[stage]: counts.get(stage) for stage in UNIT_COLUMNS
    }
    values["status"] = ItemStatus(status).value
    values["completed"] = completed
    result = session.execute(
        update(ShoppingItemORM)
        .where(ShoppingItemORM.id == item_id, owned_by(user_id))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def update_item_fields(
    session: Session,
    item_id: int,
    user_id: str,
    capabilities: SchemaCapabilities,
    fields: Mapping[str, Any],
) -> int:
    """Apply a field update, dropping columns the current schema does not have."""

    unknown = set(fields) - (set(_items.c.keys()) - _IMMUTABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown shopping item field(s): {', '.join(sorted(unknown))}")

    present = {column.name for column in _selected_columns(capabilities)}
    values = {key: value for key, value in fields.items() if key in present}
    if not values:
        return 0
    result = session.execute(
        update(ShoppingItemORM)
        .where(ShoppingItemORM.id == item_id, owned_by(user_id))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def require_owned_list(session: Session, list_id: int, user_id: str) -> None:
    exists = session.execute(
        select(ShoppingListORM.id).where(
            ShoppingListORM.id == list_id,
            ShoppingListORM.user_id == user_id,
        )
    ).first()
    if exists is None:
        raise ValueError(f"Shopping list {list_id} not found")


def insert_item(
    session: Session,
    capabilities: SchemaCapabilities,
    *,
    list_id: int,
    name: str,
    quantity: int = 1,
    category: str = "Other",
    notes: Optional[str] = None,
    priority: str = "medium",
    image_url: Optional[str] = None,
    quality: Optional[str] = None,
) -> int:
    """Insert an item with every unit pending; returns the new item id."""

    values: dict[str, Any] = {
        "list_id": list_id,
        "name": name.strip(),
        "quantity": int(quantity),
        "category": category or "Other",
        "notes": notes or None,
        "priority": Priority(priority).value,
        "image_url": image_url or None,
        "quality": quality or None,
        "completed": False,
    }
    if capabilities.has_status_column:
        values["status"] = ItemStatus.PENDING.value
    if capabilities.has_unit_columns:
        for stage, column in UNIT_COLUMNS.items():
            values[column] = int(quantity) if stage is ItemStatus.PENDING else 0

    result = session.execute(insert(_items).values(**values))
    return int(result.inserted_primary_key[0])


def create_shopping_item(
    *,
    user_id: str,
    list_id: int,
    name: str,
    quantity: int = 1,
    category: str = "Other",
    notes: Optional[str] = None,
    priority: str = "medium",
    image_url: Optional[str] = None,
    quality: Optional[str] = None,
) -> ShoppingItem:
    with session_scope() as session:
        require_owned_list(session, list_id, user_id)
        capabilities = probe_capabilities(session.connection())
        item_id = insert_item(
            session,
            capabilities,
            list_id=list_id,
            name=name,
            quantity=quantity,
            category=category,
            notes=notes,
            priority=priority,
            image_url=image_url,
            quality=quality,
        )
        item = find_item_for_owner(session, item_id, user_id, capabilities)
        assert item is not None
        return item


def create_bulk_items(*, user_id: str, list_id: int, image_urls: Sequence[str]) -> List[ShoppingItem]:
    """Create one placeholder item per non-blank image URL, named by position."""

    with session_scope() as session:
        require_owned_list(session, list_id, user_id)
        capabilities = probe_capabilities(session.connection())
        created_ids: List[int] = []
        for index, raw_url in enumerate(image_urls, start=1):
            url = raw_url.strip()
            if not url:
                continue
            created_ids.append(
                insert_item(
                    session,
                    capabilities,
                    list_id=list_id,
                    name=f"Item {index}",
                    image_url=url,
                )
            )
        logger.info("Bulk-created %s item(s) on list %s", len(created_ids), list_id)
        return [
            item
            for item_id in created_ids
            if (item := find_item_for_owner(session, item_id, user_id, capabilities)) is not None
        ]


def get_shopping_item(item_id: int, *, user_id: str) -> Optional[ShoppingItem]:
    with session_scope() as session:
        capabilities = probe_capabilities(session.connection())
        return find_item_for_owner(session, item_id, user_id, capabilities)


def update_shopping_item(
    item_id: int,
    *,
    user_id: str,
    name: str | object = _UNSET,
    category: str | object = _UNSET,
    notes: str | None | object = _UNSET,
    priority: str | object = _UNSET,
    image_url: str | None | object = _UNSET,
    quality: str | None | object = _UNSET,
) -> ShoppingItem:
    """Edit descriptive fields only; quantity changes go through the unit ledger."""

    supplied = {
        "name": name,
        "category": category,
        "notes": notes,
        "priority": priority,
        "image_url": image_url,
        "quality": quality,
    }
    fields = normalize_item_fields(
        {key: value for key, value in supplied.items() if value is not _UNSET}
    )

    with session_scope() as session:
        capabilities = probe_capabilities(session.connection())
        if fields:
            update_item_fields(session, item_id, user_id, capabilities, fields)
        item = find_item_for_owner(session, item_id, user_id, capabilities)
        if item is None:
            raise ValueError(f"Shopping item {item_id} not found")
        return item


def delete_shopping_item(item_id: int, *, user_id: str) -> None:
    with session_scope() as session:
        result = session.execute(
            delete(ShoppingItemORM)
            .where(ShoppingItemORM.id == item_id, owned_by(user_id))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ValueError(f"Shopping item {item_id} not found")


__all__ = [
    "EDITABLE_FIELDS",
    "InvalidItemFieldError",
    "normalize_item_fields",
    "owned_by",
    "require_owned_list",
    "find_item_for_owner",
    "list_items_for_list",
    "update_item_units",
    "update_item_fields",
    "insert_item",
    "create_shopping_item",
    "create_bulk_items",
    "get_shopping_item",
    "update_shopping_item",
    "delete_shopping_item",
]
