"""Integration tests for the shopping list endpoints."""

from __future__ import annotations

from fastapi import status

from tests.integration.utils import auth_headers, create_item, create_list
from tests.utils import STRANGER


def test_list_crud(client):
    response = client.get("/lists", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == []

    created = create_list(client, name="Groceries")
    assert created["name"] == "Groceries"
    assert created["store"] == "Corner shop"

    item = create_item(client, created["id"], name="bread")
    client.post(f"/items/{item['id']}/progress", headers=auth_headers())
    create_item(client, created["id"], name="butter")

    response = client.get("/lists", headers=auth_headers())
    summary = response.json()[0]
    assert summary["item_count"] == 2
    assert summary["completed_count"] == 1

    response = client.get(f"/lists/{created['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert [entry["name"] for entry in response.json()["items"]] == ["bread", "butter"]

    response = client.delete(f"/lists/{created['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = client.get(f"/lists/{created['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_404_NOT_FOUND
    response = client.get(f"/items/{item['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_create_list_validates_payload(client):
    response = client.post("/lists", json={"name": "", "store": "Market"}, headers=auth_headers())
    assert response.status_code == 422


def test_lists_are_private(client):
    created = create_list(client)

    assert client.get("/lists", headers=auth_headers(STRANGER)).json() == []
    response = client.get(f"/lists/{created['id']}", headers=auth_headers(STRANGER))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    response = client.delete(f"/lists/{created['id']}", headers=auth_headers(STRANGER))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    response = client.post(
        f"/lists/{created['id']}/items",
        json={"name": "intruder"},
        headers=auth_headers(STRANGER),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_bulk_add_items(client):
    created = create_list(client)

    response = client.post(
        f"/lists/{created['id']}/items/bulk",
        json={"image_urls": "https://img.example/1.png\n\nhttps://img.example/2.png\n"},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_201_CREATED
    items = response.json()
    assert [item["name"] for item in items] == ["Item 1", "Item 2"]
    assert items[1]["image_url"] == "https://img.example/2.png"


def test_bulk_add_requires_urls(client):
    created = create_list(client)
    response = client.post(
        f"/lists/{created['id']}/items/bulk",
        json={"image_urls": []},
        headers=auth_headers(),
    )
    assert response.status_code == 422
