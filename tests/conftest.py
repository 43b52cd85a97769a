"""Shared pytest fixtures for the Shoptrack test suite."""

from __future__ import annotations

from typing import Callable, Generator, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from shoptrack.config import get_settings
from shoptrack.db.repository import reset_repository_state
from shoptrack.db.shopping_items import create_shopping_item
from shoptrack.db.shopping_lists import create_shopping_list
from shoptrack.models.shopping import ShoppingItem
from shoptrack.server.app import create_app
from tests.utils import OWNER

_LEGACY_LISTS_DDL = """
CREATE TABLE shopping_lists (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id VARCHAR(255) NOT NULL,
    name VARCHAR(255) NOT NULL,
    store VARCHAR(255) NOT NULL,
    location VARCHAR(255),
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""

_LEGACY_ITEMS_DDL = """
CREATE TABLE shopping_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    list_id INTEGER NOT NULL REFERENCES shopping_lists(id) ON DELETE CASCADE,
    name VARCHAR(255) NOT NULL,
    quantity INTEGER NOT NULL DEFAULT 1,
    category VARCHAR(128) NOT NULL DEFAULT 'Other',
    notes TEXT,
    priority VARCHAR(16) NOT NULL DEFAULT 'medium',
    image_url VARCHAR(2048),
    quality VARCHAR(255),
    completed BOOLEAN NOT NULL DEFAULT 0,
    {status_column}
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_shoptrack.db"
    monkeypatch.setenv("SHOPTRACK_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("SHOPTRACK_API_TOKEN", raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("SHOPTRACK_DATABASE_PATH", raising=False)
    get_settings.cache_clear()


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def make_item() -> Callable[..., ShoppingItem]:
    """Create a list owned by ``OWNER`` (once per test) and add an item to it."""

    list_ids: dict[str, int] = {}

    def _make(name: str = "widget", quantity: int = 1, user_id: str = OWNER) -> ShoppingItem:
        if user_id not in list_ids:
            list_ids[user_id] = create_shopping_list(user_id=user_id, name="Weekly", store="Corner shop").id
        return create_shopping_item(
            user_id=user_id,
            list_id=list_ids[user_id],
            name=name,
            quantity=quantity,
        )

    return _make


@pytest.fixture()
def legacy_database() -> Callable[[bool], None]:
    """Pre-create tables in a pre-unit generation before the engine first connects.

    ``with_status=False`` gives the oldest (completed-only) shape.
    """

    def _create(with_status: bool = False) -> None:
        status_column: Optional[str] = (
            "status VARCHAR(16) NOT NULL DEFAULT 'pending'," if with_status else ""
        )
        engine = create_engine(f"sqlite:///{get_settings().database_path}")
        with engine.begin() as connection:
            connection.execute(text(_LEGACY_LISTS_DDL))
            connection.execute(text(_LEGACY_ITEMS_DDL.format(status_column=status_column)))
        engine.dispose()
        reset_repository_state()

    return _create
