"""Dependency definitions for the Shoptrack API server."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from fastapi import Depends, HTTPException, Request, status

from shoptrack.config import get_settings
from shoptrack.db.gallery import (
    add_item_from_gallery,
    create_gallery_item,
    delete_gallery_item,
    initialize_gallery_from_items,
    list_gallery_items,
    update_gallery_item,
)
from shoptrack.db.shopping_items import (
    create_bulk_items,
    create_shopping_item,
    delete_shopping_item,
    get_shopping_item,
    update_shopping_item,
)
from shoptrack.db.shopping_lists import (
    create_shopping_list,
    delete_shopping_list,
    get_shopping_list,
    list_shopping_lists,
)
from shoptrack.ledger import UnitLedger
from shoptrack.models.gallery import GalleryItem
from shoptrack.models.shopping import (
    ShoppingItem,
    ShoppingList,
    ShoppingListDetail,
    ShoppingListSummary,
)

ListsProvider = Callable[[str], List[ShoppingListSummary]]
ListCreator = Callable[[str, dict], ShoppingList]
ListFetcher = Callable[[str, int], Optional[ShoppingListDetail]]
ListDeleter = Callable[[str, int], None]
ItemCreator = Callable[[str, int, dict], ShoppingItem]
BulkItemCreator = Callable[[str, int, Sequence[str]], List[ShoppingItem]]
ItemFetcher = Callable[[str, int], Optional[ShoppingItem]]
ItemUpdater = Callable[[str, int, dict], ShoppingItem]
ItemDeleter = Callable[[str, int], None]
GalleryProvider = Callable[[str], List[GalleryItem]]
GalleryCreator = Callable[[str, dict], GalleryItem]
GalleryUpdater = Callable[[str, int, dict], GalleryItem]
GalleryDeleter = Callable[[str, int], None]
GalleryItemAdder = Callable[[str, int, int, int], ShoppingItem]
GalleryInitializer = Callable[[str], int]


def get_lists_provider() -> ListsProvider:
    return list_shopping_lists


def get_list_creator() -> ListCreator:
    return lambda user_id, payload: create_shopping_list(user_id=user_id, **payload)


def get_list_fetcher() -> ListFetcher:
    return lambda user_id, list_id: get_shopping_list(list_id, user_id=user_id)


def get_list_deleter() -> ListDeleter:
    return lambda user_id, list_id: delete_shopping_list(list_id, user_id=user_id)


def get_item_creator() -> ItemCreator:
    return lambda user_id, list_id, payload: create_shopping_item(
        user_id=user_id, list_id=list_id, **payload
    )


def get_bulk_item_creator() -> BulkItemCreator:
    return lambda user_id, list_id, image_urls: create_bulk_items(
        user_id=user_id, list_id=list_id, image_urls=image_urls
    )


def get_item_fetcher() -> ItemFetcher:
    return lambda user_id, item_id: get_shopping_item(item_id, user_id=user_id)


def get_item_updater() -> ItemUpdater:
    return lambda user_id, item_id, payload: update_shopping_item(item_id, user_id=user_id, **payload)


def get_item_deleter() -> ItemDeleter:
    return lambda user_id, item_id: delete_shopping_item(item_id, user_id=user_id)


def get_gallery_provider() -> GalleryProvider:
    return list_gallery_items


def get_gallery_creator() -> GalleryCreator:
    return lambda user_id, payload: create_gallery_item(user_id=user_id, **payload)


def get_gallery_updater() -> GalleryUpdater:
    return lambda user_id, gallery_id, payload: update_gallery_item(
        gallery_id, user_id=user_id, **payload
    )


def get_gallery_deleter() -> GalleryDeleter:
    return lambda user_id, gallery_id: delete_gallery_item(gallery_id, user_id=user_id)


def get_gallery_item_adder() -> GalleryItemAdder:
    return lambda user_id, gallery_id, list_id, quantity: add_item_from_gallery(
        gallery_id, user_id=user_id, list_id=list_id, quantity=quantity
    )


def get_gallery_initializer() -> GalleryInitializer:
    return initialize_gallery_from_items


def require_api_token(
    request: Request,
    settings = Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.query_params.get("api_token") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_current_user_id(
    request: Request,
    settings = Depends(get_settings),
) -> str:
    """Return the user id resolved by the upstream authentication layer."""

    user_id = (request.headers.get(settings.user_header) or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in to continue",
        )
    request.state.user_id = user_id
    return user_id


def get_ledger(user_id: str = Depends(get_current_user_id)) -> UnitLedger:
    return UnitLedger(user_id)
