"""Unit ledger: ownership-scoped operations that keep unit buckets consistent.

Each operation runs in one transaction: probe the schema, load the item under
the ownership filter, compute the new distribution with
:mod:`shoptrack.ledger.units`, then write it back with a single UPDATE.
Expected failures come back as :class:`LedgerResult` values; only unexpected
errors propagate.

The read and the write are separate statements, so two concurrent operations
on the same item by the same user can still overwrite each other.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shoptrack import metrics
from shoptrack.db.repository import session_scope
from shoptrack.db.schema import UNIT_COLUMNS, probe_capabilities
from shoptrack.db.shopping_items import (
    EDITABLE_FIELDS,
    InvalidItemFieldError,
    find_item_for_owner,
    normalize_item_fields,
    update_item_fields,
    update_item_units,
)
from shoptrack.models.ledger import (
    LedgerErrorKind,
    LedgerResult,
    LegacyShape,
    MoveMode,
    SchemaCapabilities,
    UnitTracking,
)
from shoptrack.models.shopping import ItemStatus, ShoppingItem, UnitCounts

from . import units

logger = logging.getLogger(__name__)


class _Rejected(Exception):
    """Internal signal carrying an expected failure out of a transaction."""

    def __init__(self, kind: LedgerErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class UnitLedger:
    """Unit ledger bound to the authenticated user issuing the operations."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = (user_id or "").strip()

    # -- public operations -------------------------------------------------

    def set_unit_distribution(self, item_id: int, counts: UnitCounts) -> LedgerResult:
        """Replace the item's buckets with ``counts``, which must sum to its quantity."""

        def operation(session: Session, capabilities: SchemaCapabilities) -> ShoppingItem:
            self._require_unit_tracking(capabilities)
            item = self._load(session, item_id, capabilities)
            return self._write_distribution(session, item, counts, capabilities)

        return self._run("set_unit_distribution", item_id, operation)

    def move_units(
        self,
        item_id: int,
        source: ItemStatus,
        target: ItemStatus,
        mode: MoveMode = MoveMode.ONE,
    ) -> LedgerResult:
        def operation(session: Session, capabilities: SchemaCapabilities) -> ShoppingItem:
            self._require_unit_tracking(capabilities)
            item = self._load(session, item_id, capabilities)
            return self._move(session, item, source, target, mode, capabilities)

        return self._run("move_units", item_id, operation)

    def progress_to_next_stage(self, item_id: int) -> LedgerResult:
        """Advance one unit from the item's current status along the forward chain.

        ``success`` is terminal and returns the item unchanged; ``failed`` units
        recycle to ``pending``. Legacy schemas fall back to the status cycle.
        """

        def operation(session: Session, capabilities: SchemaCapabilities) -> ShoppingItem:
            item = self._load(session, item_id, capabilities)
            if capabilities.unit_tracking is UnitTracking.LEGACY:
                return self._legacy_advance(session, item, capabilities)
            return self._advance_one(session, item, capabilities)

        return self._run("progress_to_next_stage", item_id, operation)

    def reconcile_quantity_change(
        self,
        item_id: int,
        new_quantity: int,
        **fields: Any,
    ) -> LedgerResult:
        """Change the item's quantity, redistributing buckets, together with field edits."""

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported item field(s): {', '.join(sorted(unknown))}")
        try:
            if new_quantity < 1:
                raise InvalidItemFieldError("Quantity must be at least 1")
            fields = normalize_item_fields(fields)
        except InvalidItemFieldError as exc:
            return self._finish(
                "reconcile_quantity_change",
                LedgerResult.failure(LedgerErrorKind.INVARIANT_VIOLATION, str(exc)),
            )

        def operation(session: Session, capabilities: SchemaCapabilities) -> ShoppingItem:
            item = self._load(session, item_id, capabilities)
            changes: dict[str, Any] = {**fields, "quantity": new_quantity}

            if capabilities.unit_tracking is UnitTracking.ENABLED:
                assert item.units is not None
                counts = units.reconcile_quantity(item.units, new_quantity)
                changes.update(_unit_fields(counts))
                logger.debug(
                    "Reconciled item %s quantity %s -> %s: %s",
                    item.id,
                    item.quantity,
                    new_quantity,
                    counts.as_dict(),
                )

            self._store(update_item_fields(session, item.id, self.user_id, capabilities, changes), item.id)
            return self._load(session, item.id, capabilities)

        return self._run("reconcile_quantity_change", item_id, operation)

    def toggle_or_advance_status(self, item_id: int) -> LedgerResult:
        """Legacy transition; delegates to :meth:`progress_to_next_stage` on unit schemas."""

        def operation(session: Session, capabilities: SchemaCapabilities) -> ShoppingItem:
            item = self._load(session, item_id, capabilities)
            if capabilities.unit_tracking is UnitTracking.ENABLED:
                return self._advance_one(session, item, capabilities)
            return self._legacy_advance(session, item, capabilities)

        return self._run("toggle_or_advance_status", item_id, operation)

    # -- internals -----------------------------------------------------------

    def _run(
        self,
        operation_name: str,
        item_id: int,
        operation: Callable[[Session, SchemaCapabilities], ShoppingItem],
    ) -> LedgerResult:
        log_extra = {"user_id": self.user_id, "item_id": item_id, "operation": operation_name}
        if not self.user_id:
            return self._finish(
                operation_name,
                LedgerResult.failure(LedgerErrorKind.UNAUTHORIZED, "Authentication required"),
            )

        try:
            with session_scope() as session:
                capabilities = probe_capabilities(session.connection())
                item = operation(session, capabilities)
        except _Rejected as rejected:
            logger.info("Ledger %s rejected: %s", operation_name, rejected.message, extra=log_extra)
            return self._finish(operation_name, LedgerResult.failure(rejected.kind, rejected.message))
        except SQLAlchemyError:
            logger.exception("Ledger %s failed to persist item %s", operation_name, item_id, extra=log_extra)
            return self._finish(
                operation_name,
                LedgerResult.failure(
                    LedgerErrorKind.PERSISTENCE_ERROR, "Failed to update shopping item"
                ),
            )

        logger.debug(
            "Ledger %s item=%s status=%s units=%s",
            operation_name,
            item.id,
            item.status,
            item.units.as_dict() if item.units else None,
            extra=log_extra,
        )
        return self._finish(operation_name, LedgerResult.success(item))

    @staticmethod
    def _finish(operation_name: str, result: LedgerResult) -> LedgerResult:
        outcome = "ok" if result.ok else result.error.value
        metrics.LEDGER_OPERATIONS.labels(operation=operation_name, outcome=outcome).inc()
        return result

    @staticmethod
    def _require_unit_tracking(capabilities: SchemaCapabilities) -> None:
        if capabilities.unit_tracking is not UnitTracking.ENABLED:
            raise _Rejected(
                LedgerErrorKind.UNIT_TRACKING_UNAVAILABLE,
                "Unit tracking columns are not available; run the unit migration first",
            )

    def _load(self, session: Session, item_id: int, capabilities: SchemaCapabilities) -> ShoppingItem:
        item = find_item_for_owner(session, item_id, self.user_id, capabilities)
        if item is None:
            raise _Rejected(LedgerErrorKind.NOT_FOUND, f"Shopping item {item_id} not found")
        return item

    @staticmethod
    def _store(rows_affected: int, item_id: int) -> None:
        if rows_affected == 0:
            raise _Rejected(LedgerErrorKind.NOT_FOUND, f"Shopping item {item_id} not found")

    def _write_distribution(
        self,
        session: Session,
        item: ShoppingItem,
        counts: UnitCounts,
        capabilities: SchemaCapabilities,
    ) -> ShoppingItem:
        try:
            units.check_distribution(counts, item.quantity)
        except units.UnitSumMismatchError as exc:
            raise _Rejected(LedgerErrorKind.INVARIANT_VIOLATION, str(exc)) from exc

        status = units.derive_primary_status(counts)
        completed = units.derive_completed(counts)
        self._store(
            update_item_units(session, item.id, self.user_id, counts, status, completed),
            item.id,
        )
        return self._load(session, item.id, capabilities)

    def _move(
        self,
        session: Session,
        item: ShoppingItem,
        source: ItemStatus,
        target: ItemStatus,
        mode: MoveMode,
        capabilities: SchemaCapabilities,
    ) -> ShoppingItem:
        assert item.units is not None
        try:
            counts = units.move(item.units, source, target, mode)
        except units.NoUnitsAvailableError as exc:
            raise _Rejected(LedgerErrorKind.NO_UNITS_AVAILABLE, str(exc)) from exc

        moved = item.units.get(source) - counts.get(source)
        if moved:
            metrics.UNITS_MOVED.labels(source=ItemStatus(source).value, target=ItemStatus(target).value).inc(moved)
        return self._write_distribution(session, item, counts, capabilities)

    def _advance_one(
        self,
        session: Session,
        item: ShoppingItem,
        capabilities: SchemaCapabilities,
    ) -> ShoppingItem:
        target = units.next_stage(item.status)
        if target is None:
            return item
        source = units.coerce_status(item.status) or ItemStatus.PENDING
        return self._move(session, item, source, target, MoveMode.ONE, capabilities)

    def _legacy_advance(
        self,
        session: Session,
        item: ShoppingItem,
        capabilities: SchemaCapabilities,
    ) -> ShoppingItem:
        if capabilities.legacy_shape is LegacyShape.TOGGLE:
            changes: dict[str, Any] = {"completed": not item.completed}
        else:
            status = units.legacy_advance(item.status)
            changes = {
                "status": status.value,
                "completed": status in units.LEGACY_COMPLETED_STAGES,
            }
        self._store(update_item_fields(session, item.id, self.user_id, capabilities, changes), item.id)
        return self._load(session, item.id, capabilities)


def _unit_fields(counts: UnitCounts) -> dict[str, Any]:
    fields: dict[str, Any] = {column: counts.get(stage) for stage, column in UNIT_COLUMNS.items()}
    fields["status"] = units.derive_primary_status(counts).value
    fields["completed"] = units.derive_completed(counts)
    return fields


__all__ = ["UnitLedger"]
