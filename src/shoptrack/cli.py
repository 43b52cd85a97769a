"""Command-line interface for Shoptrack maintenance tasks."""

from __future__ import annotations

import json
from typing import Optional

import typer

from shoptrack.config import get_settings
from shoptrack.db.repository import get_engine
from shoptrack.db.schema import migrate_unit_columns, probe_capabilities
from shoptrack.ledger import UnitLedger
from shoptrack.logging_utils import configure_logging

app = typer.Typer(help="Shoptrack shopping-list maintenance commands.")


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


@app.command()
def schema() -> None:
    """Show which generation of shopping item columns the database carries."""

    capabilities = probe_capabilities(get_engine())
    typer.echo(f"Database: {get_settings().database_path}")
    typer.echo(f"Unit tracking: {capabilities.unit_tracking.value}")
    typer.echo(f"Legacy shape: {capabilities.legacy_shape.value}")


@app.command()
def migrate() -> None:
    """Add unit-tracking columns to shopping_items and backfill existing rows."""

    added = migrate_unit_columns()
    if not added:
        typer.echo("Schema already supports unit tracking; nothing to do.")
        return
    typer.echo(f"Added column(s): {', '.join(added)}")


@app.command()
def progress(
    item_id: int = typer.Argument(..., help="Shopping item to advance."),
    user: str = typer.Option(..., "--user", help="Owner of the item."),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print result JSON."),
) -> None:
    """Advance one unit of an item to its next stage."""

    result = UnitLedger(user).progress_to_next_stage(item_id)
    payload = result.model_dump(mode="json")
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))
    if not result.ok:
        raise typer.Exit(code=1)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``shoptrack`` console script."""
    app(prog_name="shoptrack", args=argv)


if __name__ == "__main__":
    main()
