"""Unit tests for the shopping list repository helpers."""

from __future__ import annotations

import pytest

from shoptrack.db.shopping_items import create_shopping_item, get_shopping_item
from shoptrack.db.shopping_lists import (
    create_shopping_list,
    delete_shopping_list,
    get_shopping_list,
    list_shopping_lists,
)
from shoptrack.ledger import UnitLedger
from tests.utils import OWNER, STRANGER


def test_create_and_list_shopping_lists():
    first = create_shopping_list(user_id=OWNER, name="Groceries", store="Market", location="Downtown")
    second = create_shopping_list(user_id=OWNER, name="Hardware", store="DIY")
    create_shopping_list(user_id=STRANGER, name="Not mine", store="Elsewhere")

    lists = list_shopping_lists(OWNER)

    assert [entry.id for entry in lists] == [second.id, first.id]
    assert lists[1].location == "Downtown"
    assert all(entry.user_id == OWNER for entry in lists)


def test_list_summary_counts_items_and_completed():
    shopping_list = create_shopping_list(user_id=OWNER, name="Party", store="Market")
    cake = create_shopping_item(user_id=OWNER, list_id=shopping_list.id, name="cake")
    create_shopping_item(user_id=OWNER, list_id=shopping_list.id, name="candles", quantity=10)
    create_shopping_list(user_id=OWNER, name="Empty", store="Market")

    UnitLedger(OWNER).progress_to_next_stage(cake.id)

    summaries = {entry.name: entry for entry in list_shopping_lists(OWNER)}
    assert summaries["Party"].item_count == 2
    assert summaries["Party"].completed_count == 1
    assert summaries["Empty"].item_count == 0
    assert summaries["Empty"].completed_count == 0


def test_get_shopping_list_includes_items_in_creation_order():
    shopping_list = create_shopping_list(user_id=OWNER, name="Weekly", store="Market")
    create_shopping_item(user_id=OWNER, list_id=shopping_list.id, name="milk", quantity=2)
    create_shopping_item(user_id=OWNER, list_id=shopping_list.id, name="eggs", quantity=12)

    detail = get_shopping_list(shopping_list.id, user_id=OWNER)

    assert detail is not None
    assert [item.name for item in detail.items] == ["milk", "eggs"]
    assert get_shopping_list(shopping_list.id, user_id=STRANGER) is None


def test_delete_shopping_list_removes_items():
    shopping_list = create_shopping_list(user_id=OWNER, name="Weekly", store="Market")
    item = create_shopping_item(user_id=OWNER, list_id=shopping_list.id, name="milk")

    with pytest.raises(ValueError):
        delete_shopping_list(shopping_list.id, user_id=STRANGER)

    delete_shopping_list(shopping_list.id, user_id=OWNER)

    assert get_shopping_list(shopping_list.id, user_id=OWNER) is None
    assert get_shopping_item(item.id, user_id=OWNER) is None
    with pytest.raises(ValueError):
        delete_shopping_list(shopping_list.id, user_id=OWNER)
