"""Gallery (reusable item template) persistence helpers."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, select

from shoptrack.models.gallery import GalleryItem
from shoptrack.models.shopping import Priority, ShoppingItem

from .models import GalleryItemORM, ShoppingItemORM, ShoppingListORM
from .repository import session_scope
from .schema import probe_capabilities
from .shopping_items import find_item_for_owner, insert_item, require_owned_list

logger = logging.getLogger(__name__)


def _to_model(row: GalleryItemORM) -> GalleryItem:
    return GalleryItem.model_validate(
        {
            "id": row.id,
            "user_id": row.user_id,
            "name": row.name,
            "category": row.category,
            "priority": row.priority,
            "image_url": row.image_url,
            "usage_count": row.usage_count,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _owned_gallery_item(session, gallery_id: int, user_id: str) -> GalleryItemORM:
    row = session.execute(
        select(GalleryItemORM).where(
            GalleryItemORM.id == gallery_id,
            GalleryItemORM.user_id == user_id,
        )
    ).scalar_one_or_none()
    if row is None:
        raise ValueError(f"Gallery item {gallery_id} not found")
    return row


def list_gallery_items(user_id: str) -> List[GalleryItem]:
    """Return the user's gallery, most used first."""

    with session_scope() as session:
        rows = (
            session.execute(
                select(GalleryItemORM)
                .where(GalleryItemORM.user_id == user_id)
                .order_by(
                    GalleryItemORM.usage_count.desc(),
                    GalleryItemORM.updated_at.desc(),
                    GalleryItemORM.id.desc(),
                )
            )
            .scalars()
            .all()
        )
        return [_to_model(row) for row in rows]


def create_gallery_item(
    *,
    user_id: str,
    name: str,
    category: str = "Other",
    priority: str = "medium",
    image_url: Optional[str] = None,
) -> GalleryItem:
    """Create a template; an existing one with the same name and category is returned as is."""

    name = name.strip()
    category = category or "Other"
    with session_scope() as session:
        existing = session.execute(
            select(GalleryItemORM).where(
                GalleryItemORM.user_id == user_id,
                GalleryItemORM.name == name,
                GalleryItemORM.category == category,
            )
        ).scalar_one_or_none()
        if existing is not None:
            logger.debug("Gallery item %r/%r already exists for user=%s", name, category, user_id)
            return _to_model(existing)

        row = GalleryItemORM(
            user_id=user_id,
            name=name,
            category=category,
            priority=Priority(priority).value,
            image_url=image_url or None,
            usage_count=0,
        )
        session.add(row)
        session.flush()
        session.refresh(row)
        return _to_model(row)


def update_gallery_item(
    gallery_id: int,
    *,
    user_id: str,
    name: str,
    category: str = "Other",
    priority: str = "medium",
    image_url: Optional[str] = None,
) -> GalleryItem:
    with session_scope() as session:
        row = _owned_gallery_item(session, gallery_id, user_id)
        row.name = name.strip()
        row.category = category or "Other"
        row.priority = Priority(priority).value
        row.image_url = image_url or None
        session.flush()
        session.refresh(row)
        return _to_model(row)


def delete_gallery_item(gallery_id: int, *, user_id: str) -> None:
    with session_scope() as session:
        row = _owned_gallery_item(session, gallery_id, user_id)
        session.delete(row)


def add_item_from_gallery(
    gallery_id: int,
    *,
    user_id: str,
    list_id: int,
    quantity: int = 1,
) -> ShoppingItem:
    """Copy a template onto a list and bump its usage count."""

    with session_scope() as session:
        template = _owned_gallery_item(session, gallery_id, user_id)
        require_owned_list(session, list_id, user_id)
        capabilities = probe_capabilities(session.connection())
        item_id = insert_item(
            session,
            capabilities,
            list_id=list_id,
            name=template.name,
            quantity=quantity,
            category=template.category,
            priority=template.priority,
            image_url=template.image_url,
        )
        template.usage_count = template.usage_count + 1
        session.flush()
        item = find_item_for_owner(session, item_id, user_id, capabilities)
        assert item is not None
        return item


def initialize_gallery_from_items(user_id: str) -> int:
    """Seed the gallery from distinct items on the user's lists.

    Existing templates keep the larger usage count, take the newer priority and
    keep their image when the item has none. Returns the number of item groups
    merged into the gallery.
    """

    usage = func.count(ShoppingItemORM.id).label("usage_count")
    latest = func.max(ShoppingItemORM.created_at).label("latest_created")
    with session_scope() as session:
        groups = session.execute(
            select(
                ShoppingItemORM.name,
                ShoppingItemORM.category,
                ShoppingItemORM.priority,
                ShoppingItemORM.image_url,
                usage,
                latest,
            )
            .join(ShoppingListORM, ShoppingItemORM.list_id == ShoppingListORM.id)
            .where(ShoppingListORM.user_id == user_id)
            .group_by(
                ShoppingItemORM.name,
                ShoppingItemORM.category,
                ShoppingItemORM.priority,
                ShoppingItemORM.image_url,
            )
            .order_by(usage.desc(), latest.desc())
        ).all()

        merged = 0
        for group in groups:
            existing = session.execute(
                select(GalleryItemORM).where(
                    GalleryItemORM.user_id == user_id,
                    GalleryItemORM.name == group.name,
                    GalleryItemORM.category == group.category,
                )
            ).scalar_one_or_none()
            if existing is None:
                session.add(
                    GalleryItemORM(
                        user_id=user_id,
                        name=group.name,
                        category=group.category,
                        priority=group.priority,
                        image_url=group.image_url,
                        usage_count=group.usage_count,
                    )
                )
            else:
                existing.usage_count = max(existing.usage_count, group.usage_count)
                existing.priority = group.priority
                existing.image_url = group.image_url or existing.image_url
            session.flush()
            merged += 1

        logger.info("Initialized gallery for user=%s from %s item group(s)", user_id, merged)
        return merged


__all__ = [
    "list_gallery_items",
    "create_gallery_item",
    "update_gallery_item",
    "delete_gallery_item",
    "add_item_from_gallery",
    "initialize_gallery_from_items",
]
