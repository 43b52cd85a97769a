"""Schema capability probe and in-place unit-column migration for shopping items."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

from shoptrack.models.ledger import SchemaCapabilities
from shoptrack.models.shopping import STAGE_ORDER, ItemStatus

from .models import ShoppingItemORM
from .repository import get_engine

logger = logging.getLogger(__name__)

ITEMS_TABLE = ShoppingItemORM.__tablename__

UNIT_COLUMNS: dict[ItemStatus, str] = {stage: f"{stage.value}_units" for stage in STAGE_ORDER}


def probe_capabilities(bind: Connection | Engine) -> SchemaCapabilities:
    """Inspect ``shopping_items`` and report which generation of columns it carries.

    Unit columns count as present only when all five exist; partially migrated
    tables are treated as legacy.
    """

    columns = {column["name"] for column in inspect(bind).get_columns(ITEMS_TABLE)}
    return SchemaCapabilities(
        has_status_column="status" in columns,
        has_unit_columns=all(name in columns for name in UNIT_COLUMNS.values()),
    )


def has_unit_columns() -> bool:
    return probe_capabilities(get_engine()).has_unit_columns


def migrate_unit_columns(engine: Engine | None = None) -> List[str]:
    """Add missing ``status`` / unit columns and backfill existing rows.

    Backfilled rows hold all of their quantity in the bucket named by their
    status; rows that predate the status column take ``done`` when completed
    and ``pending`` otherwise. Returns the names of the columns added.
    """

    engine = engine or get_engine()
    table = ShoppingItemORM.__table__
    added: List[str] = []

    with engine.begin() as connection:
        existing = {column["name"] for column in inspect(connection).get_columns(ITEMS_TABLE)}

        if "status" not in existing:
            connection.execute(
                text(f"ALTER TABLE {ITEMS_TABLE} ADD COLUMN status VARCHAR(16) NOT NULL DEFAULT 'pending'")
            )
            connection.execute(
                text(
                    f"UPDATE {ITEMS_TABLE} SET status = "
                    "CASE WHEN completed THEN 'done' ELSE 'pending' END"
                )
            )
            added.append("status")

        missing_units = [name for name in UNIT_COLUMNS.values() if name not in existing]
        for name in missing_units:
            column_type = table.c[name].type.compile(dialect=connection.dialect)
            connection.execute(text(f"ALTER TABLE {ITEMS_TABLE} ADD COLUMN {name} {column_type}"))
            added.append(name)

        if missing_units:
            backfilled = _backfill_unit_columns(connection)
            logger.info(
                "Backfilled unit columns for %s shopping item(s) (added=%s)",
                backfilled,
                ", ".join(added),
            )

    return added


def _backfill_unit_columns(connection: Connection) -> int:
    later_stages = [stage.value for stage in STAGE_ORDER if stage is not ItemStatus.PENDING]
    assignments = []
    params: dict[str, str] = {}
    for stage in later_stages:
        params[f"stage_{stage}"] = stage
        assignments.append(
            f"{UNIT_COLUMNS[ItemStatus(stage)]} = "
            f"CASE WHEN status = :stage_{stage} THEN quantity ELSE 0 END"
        )
    placeholders = ", ".join(f":stage_{stage}" for stage in later_stages)
    # Unknown statuses fall into pending so every row satisfies the sum invariant.
    assignments.append(
        f"{UNIT_COLUMNS[ItemStatus.PENDING]} = "
        f"CASE WHEN status IN ({placeholders}) THEN 0 ELSE quantity END"
    )
    result = connection.execute(
        text(
            f"UPDATE {ITEMS_TABLE} SET {', '.join(assignments)} "
            f"WHERE {UNIT_COLUMNS[ItemStatus.PENDING]} IS NULL"
        ),
        params,
    )
    return result.rowcount or 0


__all__ = [
    "UNIT_COLUMNS",
    "probe_capabilities",
    "has_unit_columns",
    "migrate_unit_columns",
]
