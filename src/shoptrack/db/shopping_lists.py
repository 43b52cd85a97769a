"""Shopping list persistence helpers."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import case, delete, func, select

from shoptrack.models.shopping import ShoppingList, ShoppingListDetail, ShoppingListSummary

from .models import ShoppingItemORM, ShoppingListORM
from .repository import session_scope
from .schema import probe_capabilities
from .shopping_items import list_items_for_list

logger = logging.getLogger(__name__)


def _list_payload(row: ShoppingListORM) -> dict[str, object]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "name": row.name,
        "store": row.store,
        "location": row.location,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


def create_shopping_list(
    *,
    user_id: str,
    name: str,
    store: str,
    location: Optional[str] = None,
) -> ShoppingList:
    with session_scope() as session:
        db_list = ShoppingListORM(
            user_id=user_id,
            name=name.strip(),
            store=store.strip(),
            location=location.strip() if location else None,
        )
        session.add(db_list)
        session.flush()
        session.refresh(db_list)
        logger.info("Created shopping list id=%s user=%s", db_list.id, user_id)
        return ShoppingList.model_validate(_list_payload(db_list))


def list_shopping_lists(user_id: str) -> List[ShoppingListSummary]:
    """Return the user's lists, newest first, with item and completed counts."""

    item_count = func.count(ShoppingItemORM.id)
    completed_count = func.count(case((ShoppingItemORM.completed.is_(True), 1)))

    with session_scope() as session:
        rows = session.execute(
            select(ShoppingListORM, item_count, completed_count)
            .outerjoin(ShoppingItemORM, ShoppingItemORM.list_id == ShoppingListORM.id)
            .where(ShoppingListORM.user_id == user_id)
            .group_by(ShoppingListORM.id)
            .order_by(ShoppingListORM.created_at.desc(), ShoppingListORM.id.desc())
        ).all()
        return [
            ShoppingListSummary.model_validate(
                {
                    **_list_payload(db_list),
                    "item_count": items,
                    "completed_count": completed,
                }
            )
            for db_list, items, completed in rows
        ]


def get_shopping_list(list_id: int, *, user_id: str) -> Optional[ShoppingListDetail]:
    with session_scope() as session:
        db_list = session.execute(
            select(ShoppingListORM).where(
                ShoppingListORM.id == list_id,
                ShoppingListORM.user_id == user_id,
            )
        ).scalar_one_or_none()
        if db_list is None:
            return None
        capabilities = probe_capabilities(session.connection())
        items = list_items_for_list(session, list_id, capabilities)
        return ShoppingListDetail.model_validate({**_list_payload(db_list), "items": items})


def delete_shopping_list(list_id: int, *, user_id: str) -> None:
    """Delete a list and, with it, all of its items."""

    with session_scope() as session:
        db_list = session.execute(
            select(ShoppingListORM).where(
                ShoppingListORM.id == list_id,
                ShoppingListORM.user_id == user_id,
            )
        ).scalar_one_or_none()
        if db_list is None:
            raise ValueError(f"Shopping list {list_id} not found")
        removed = session.execute(
            delete(ShoppingItemORM)
            .where(ShoppingItemORM.list_id == list_id)
            .execution_options(synchronize_session=False)
        ).rowcount
        session.delete(db_list)
        logger.info("Deleted shopping list id=%s with %s item(s)", list_id, removed)


__all__ = [
    "create_shopping_list",
    "list_shopping_lists",
    "get_shopping_list",
    "delete_shopping_list",
]
