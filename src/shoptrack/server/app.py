"""ASGI application for Shoptrack."""
# mypy: ignore-errors

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError

from shoptrack import __version__, metrics
from shoptrack.config import Settings, get_settings
from shoptrack.db.repository import get_engine
from shoptrack.db.schema import migrate_unit_columns, probe_capabilities
from shoptrack.db.shopping_items import InvalidItemFieldError
from shoptrack.ledger import UnitLedger
from shoptrack.logging_utils import configure_logging as configure_app_logging
from shoptrack.models.gallery import GalleryItem
from shoptrack.models.ledger import LedgerErrorKind, LedgerResult, MoveMode
from shoptrack.models.shopping import (
    ItemStatus,
    Priority,
    ShoppingItem,
    ShoppingList,
    ShoppingListDetail,
    ShoppingListSummary,
    UnitCounts,
)
from shoptrack.server import deps

logger = logging.getLogger(__name__)

HTTP_422_UNPROCESSABLE = 422

LEDGER_ERROR_STATUS = {
    # Unreachable over HTTP: get_current_user_id rejects blank users first.
    LedgerErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    LedgerErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    LedgerErrorKind.INVARIANT_VIOLATION: HTTP_422_UNPROCESSABLE,
    LedgerErrorKind.NO_UNITS_AVAILABLE: status.HTTP_409_CONFLICT,
    LedgerErrorKind.UNIT_TRACKING_UNAVAILABLE: status.HTTP_409_CONFLICT,
    LedgerErrorKind.PERSISTENCE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _configure_logging(settings: Settings) -> None:
    configure_app_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


def _ledger_item(result: LedgerResult) -> ShoppingItem:
    """Unwrap a ledger result or raise the matching HTTP error."""

    if result.ok:
        return result.item
    raise HTTPException(
        status_code=LEDGER_ERROR_STATUS[result.error],
        detail={"error": result.error.value, "message": result.message},
    )


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Shoptrack", version=__version__)

    if settings.auto_migrate_units:
        added = migrate_unit_columns()
        if added:
            logger.info("Unit tracking migration added columns: %s", ", ".join(added))

    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        access_logger = logging.getLogger("shoptrack.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details without leaking sensitive data."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            path = request.url.path
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                    duration_ms / 1000.0
                )
                raise

            duration_ms = (perf_counter() - start) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": request_id,
                    "user_id": getattr(request.state, "user_id", None),
                },
            )
            metrics.REQUEST_COUNT.labels(
                method=method,
                path=path,
                status=str(response.status_code),
            ).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
            return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        log_kwargs: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_kwargs["extra"] = {"request_id": request_id}

        logger.warning(
            "Validation error on %s %s: %s",
            request.method,
            request.url.path,
            exc.errors(),
            **log_kwargs,
        )
        return JSONResponse(
            status_code=HTTP_422_UNPROCESSABLE,
            content={"detail": [_json_safe(error) for error in exc.errors()]},
        )

    # -- lists -------------------------------------------------------------

    @application.get(
        "/lists",
        response_model=list[ShoppingListSummary],
        summary="List shopping lists with progress counts",
    )
    def lists_index(
        user_id: str = Depends(deps.get_current_user_id),
        provider: deps.ListsProvider = Depends(deps.get_lists_provider),
    ) -> list[ShoppingListSummary]:
        return provider(user_id)

    @application.post(
        "/lists",
        response_model=ShoppingList,
        status_code=status.HTTP_201_CREATED,
        summary="Create shopping list",
    )
    def lists_create(
        payload: ListCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        creator: deps.ListCreator = Depends(deps.get_list_creator),
    ) -> ShoppingList:
        return creator(user_id, payload.model_dump())

    @application.get(
        "/lists/{list_id}",
        response_model=ShoppingListDetail,
        summary="Get shopping list with items",
    )
    def lists_get(
        list_id: int,
        user_id: str = Depends(deps.get_current_user_id),
        fetcher: deps.ListFetcher = Depends(deps.get_list_fetcher),
    ) -> ShoppingListDetail:
        shopping_list = fetcher(user_id, list_id)
        if shopping_list is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="List not found")
        return shopping_list

    @application.delete(
        "/lists/{list_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete shopping list and its items",
    )
    def lists_delete(
        list_id: int,
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        deleter: deps.ListDeleter = Depends(deps.get_list_deleter),
    ) -> None:
        try:
            deleter(user_id, list_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/lists/{list_id}/items",
        response_model=ShoppingItem,
        status_code=status.HTTP_201_CREATED,
        summary="Add item to shopping list",
    )
    def items_create(
        list_id: int,
        payload: ItemCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        creator: deps.ItemCreator = Depends(deps.get_item_creator),
    ) -> ShoppingItem:
        try:
            return creator(user_id, list_id, payload.model_dump(mode="json"))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/lists/{list_id}/items/bulk",
        response_model=list[ShoppingItem],
        status_code=status.HTTP_201_CREATED,
        summary="Add one item per image URL",
    )
    def items_bulk_create(
        list_id: int,
        payload: BulkCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        creator: deps.BulkItemCreator = Depends(deps.get_bulk_item_creator),
    ) -> list[ShoppingItem]:
        try:
            return creator(user_id, list_id, payload.image_urls)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    # -- items -------------------------------------------------------------

    @application.get("/items/{item_id}", response_model=ShoppingItem, summary="Get shopping item")
    def items_get(
        item_id: int,
        user_id: str = Depends(deps.get_current_user_id),
        fetcher: deps.ItemFetcher = Depends(deps.get_item_fetcher),
    ) -> ShoppingItem:
        item = fetcher(user_id, item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
        return item

    @application.put(
        "/items/{item_id}",
        response_model=ShoppingItem,
        summary="Update shopping item (quantity edits rebalance unit buckets)",
    )
    def items_update(
        item_id: int,
        payload: ItemUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        ledger: UnitLedger = Depends(deps.get_ledger),
        updater: deps.ItemUpdater = Depends(deps.get_item_updater),
    ) -> ShoppingItem:
        update_payload = payload.model_dump(mode="json", exclude_unset=True)
        if not update_payload:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields provided for update",
            )

        quantity = update_payload.pop("quantity", None)
        if quantity is not None:
            return _ledger_item(ledger.reconcile_quantity_change(item_id, quantity, **update_payload))
        try:
            return updater(user_id, item_id, update_payload)
        except InvalidItemFieldError as exc:
            raise HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.delete(
        "/items/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete shopping item",
    )
    def items_delete(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        deleter: deps.ItemDeleter = Depends(deps.get_item_deleter),
    ) -> None:
        try:
            deleter(user_id, item_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.put(
        "/items/{item_id}/units",
        response_model=ShoppingItem,
        summary="Set the unit distribution of an item",
    )
    def items_set_units(
        item_id: int,
        counts: UnitCounts = Body(...),
        auth: None = Depends(deps.require_api_token),
        ledger: UnitLedger = Depends(deps.get_ledger),
    ) -> ShoppingItem:
        return _ledger_item(ledger.set_unit_distribution(item_id, counts))

    @application.post(
        "/items/{item_id}/units/move",
        response_model=ShoppingItem,
        summary="Move units between status buckets",
    )
    def items_move_units(
        item_id: int,
        payload: MoveUnitsRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        ledger: UnitLedger = Depends(deps.get_ledger),
    ) -> ShoppingItem:
        return _ledger_item(
            ledger.move_units(item_id, payload.source, payload.target, payload.mode)
        )

    @application.post(
        "/items/{item_id}/progress",
        response_model=ShoppingItem,
        summary="Advance one unit to the next stage",
    )
    def items_progress(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        ledger: UnitLedger = Depends(deps.get_ledger),
    ) -> ShoppingItem:
        return _ledger_item(ledger.progress_to_next_stage(item_id))

    @application.post(
        "/items/{item_id}/toggle",
        response_model=ShoppingItem,
        summary="Toggle or advance status (rows without unit tracking)",
    )
    def items_toggle(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        ledger: UnitLedger = Depends(deps.get_ledger),
    ) -> ShoppingItem:
        return _ledger_item(ledger.toggle_or_advance_status(item_id))

    # -- gallery -----------------------------------------------------------

    @application.get("/gallery", response_model=list[GalleryItem], summary="List gallery items")
    def gallery_index(
        user_id: str = Depends(deps.get_current_user_id),
        provider: deps.GalleryProvider = Depends(deps.get_gallery_provider),
    ) -> list[GalleryItem]:
        return provider(user_id)

    @application.post(
        "/gallery",
        response_model=GalleryItem,
        status_code=status.HTTP_201_CREATED,
        summary="Create gallery item",
    )
    def gallery_create(
        payload: GalleryItemRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        creator: deps.GalleryCreator = Depends(deps.get_gallery_creator),
    ) -> GalleryItem:
        return creator(user_id, payload.model_dump(mode="json"))

    @application.post(
        "/gallery/initialize",
        summary="Seed the gallery from existing shopping items",
    )
    def gallery_initialize(
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        initializer: deps.GalleryInitializer = Depends(deps.get_gallery_initializer),
    ) -> dict[str, Any]:
        merged = initializer(user_id)
        return {
            "success": True,
            "merged": merged,
            "message": f"Successfully initialized gallery with {merged} items",
        }

    @application.put(
        "/gallery/{gallery_id}",
        response_model=GalleryItem,
        summary="Update gallery item",
    )
    def gallery_update(
        gallery_id: int,
        payload: GalleryItemRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        updater: deps.GalleryUpdater = Depends(deps.get_gallery_updater),
    ) -> GalleryItem:
        try:
            return updater(user_id, gallery_id, payload.model_dump(mode="json"))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        except IntegrityError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A gallery item with this name and category already exists",
            ) from exc

    @application.delete(
        "/gallery/{gallery_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete gallery item",
    )
    def gallery_delete(
        gallery_id: int,
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        deleter: deps.GalleryDeleter = Depends(deps.get_gallery_deleter),
    ) -> None:
        try:
            deleter(user_id, gallery_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/gallery/{gallery_id}/add-to-list",
        response_model=ShoppingItem,
        status_code=status.HTTP_201_CREATED,
        summary="Add a gallery item to a shopping list",
    )
    def gallery_add_to_list(
        gallery_id: int,
        payload: GalleryAddRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.get_current_user_id),
        adder: deps.GalleryItemAdder = Depends(deps.get_gallery_item_adder),
    ) -> ShoppingItem:
        try:
            return adder(user_id, gallery_id, payload.list_id, payload.quantity)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    # -- operational -------------------------------------------------------

    @application.get("/schema", summary="Report shopping item schema capabilities")
    def schema_status() -> dict[str, Any]:
        capabilities = probe_capabilities(get_engine())
        return {
            "unit_tracking": capabilities.unit_tracking.value,
            "legacy_shape": capabilities.legacy_shape.value,
            "has_status_column": capabilities.has_status_column,
            "has_unit_columns": capabilities.has_unit_columns,
        }

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return application


class ListCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    store: str = Field(min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)


class ItemCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    quantity: int = Field(default=1, ge=1)
    category: str = Field(default="Other", min_length=1, max_length=128)
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Priority = Field(default=Priority.MEDIUM)
    image_url: Optional[str] = Field(default=None, max_length=2048)
    quality: Optional[str] = Field(default=None, max_length=255)


class ItemUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=128)
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Optional[Priority] = None
    image_url: Optional[str] = Field(default=None, max_length=2048)
    quality: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name", "quantity", "category", "priority", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field may be omitted but not set to null")
        return value


class BulkCreateRequest(BaseModel):
    image_urls: list[str] = Field(min_length=1)

    @field_validator("image_urls", mode="before")
    @classmethod
    def split_lines(cls, value: Any) -> Any:
        """Accept a newline-separated string as well as a list."""
        if isinstance(value, str):
            return [line for line in value.splitlines() if line.strip()]
        return value


class MoveUnitsRequest(BaseModel):
    source: ItemStatus
    target: ItemStatus
    mode: MoveMode = MoveMode.ONE


class GalleryItemRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(default="Other", min_length=1, max_length=128)
    priority: Priority = Field(default=Priority.MEDIUM)
    image_url: Optional[str] = Field(default=None, max_length=2048)


class GalleryAddRequest(BaseModel):
    list_id: int = Field(ge=1)
    quantity: int = Field(default=1, ge=1)


app = create_app()

__all__ = ["app", "create_app"]
