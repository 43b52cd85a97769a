"""Shared helpers for integration tests."""

from __future__ import annotations

from shoptrack.config import get_settings
from tests.utils import OWNER


def auth_headers(user_id: str = OWNER) -> dict[str, str]:
    headers = {get_settings().user_header: user_id}
    token = get_settings().api_token
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_list(client, user_id: str = OWNER, name: str = "Weekly") -> dict:
    response = client.post(
        "/lists",
        json={"name": name, "store": "Corner shop"},
        headers=auth_headers(user_id),
    )
    assert response.status_code == 201
    return response.json()


def create_item(client, list_id: int, user_id: str = OWNER, **payload) -> dict:
    body = {"name": "widget", **payload}
    response = client.post(f"/lists/{list_id}/items", json=body, headers=auth_headers(user_id))
    assert response.status_code == 201
    return response.json()
