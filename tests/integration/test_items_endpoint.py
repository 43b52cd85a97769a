"""Integration tests for the shopping item and unit ledger endpoints."""

from __future__ import annotations

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from shoptrack.ledger import service as ledger_service
from shoptrack.models.ledger import LedgerErrorKind, LedgerResult
from tests.integration.utils import auth_headers, create_item, create_list
from tests.utils import STRANGER

EMPTY_UNITS = {"pending": 0, "done": 0, "shipped": 0, "success": 0, "failed": 0}


def _units(**counts) -> dict[str, int]:
    return {**EMPTY_UNITS, **counts}


def test_item_crud(client):
    shopping_list = create_list(client)
    item = create_item(client, shopping_list["id"], name="milk", quantity=2, priority="high")

    assert item["units"] == _units(pending=2)
    assert item["status"] == "pending"
    assert item["priority"] == "high"

    response = client.get(f"/items/{item['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["name"] == "milk"

    response = client.put(
        f"/items/{item['id']}",
        json={"name": "oat milk", "notes": "barista edition"},
        headers=auth_headers(),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["name"] == "oat milk"
    assert response.json()["quantity"] == 2

    response = client.delete(f"/items/{item['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = client.get(f"/items/{item['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_update_without_fields_is_rejected(client):
    item = create_item(client, create_list(client)["id"])
    response = client.put(f"/items/{item['id']}", json={}, headers=auth_headers())
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.parametrize(
    "payload",
    [
        {"name": None},
        {"priority": None},
        {"category": None},
        {"quantity": 4, "name": None},
        {"quantity": None},
        {"name": "   "},
        {"quantity": 4, "name": "   "},
    ],
)
def test_update_rejects_null_and_blank_fields(client, payload):
    shopping_list = create_list(client)
    item = create_item(client, shopping_list["id"], name="milk", quantity=2, priority="high")

    response = client.put(f"/items/{item['id']}", json=payload, headers=auth_headers())

    assert response.status_code == 422
    stored = client.get(f"/items/{item['id']}", headers=auth_headers()).json()
    assert stored["name"] == "milk"
    assert stored["priority"] == "high"
    assert stored["quantity"] == 2
    assert stored["units"] == _units(pending=2)


def test_update_allows_clearing_optional_text(client):
    shopping_list = create_list(client)
    item = create_item(client, shopping_list["id"], name="milk")
    client.put(f"/items/{item['id']}", json={"notes": "organic"}, headers=auth_headers())

    response = client.put(f"/items/{item['id']}", json={"notes": None}, headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["notes"] is None


def test_quantity_update_reconciles_units(client):
    item = create_item(client, create_list(client)["id"], quantity=3)
    client.put(
        f"/items/{item['id']}/units",
        json={"pending": 1, "done": 2},
        headers=auth_headers(),
    )

    response = client.put(
        f"/items/{item['id']}",
        json={"quantity": 5, "category": "Bulk"},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["quantity"] == 5
    assert body["category"] == "Bulk"
    assert body["units"] == _units(pending=3, done=2)


def test_set_units_rejects_wrong_sum(client):
    item = create_item(client, create_list(client)["id"], quantity=3)

    response = client.put(
        f"/items/{item['id']}/units",
        json={"done": 2},
        headers=auth_headers(),
    )

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "invariant_violation"


def test_move_units_endpoint(client):
    item = create_item(client, create_list(client)["id"], quantity=3)

    response = client.post(
        f"/items/{item['id']}/units/move",
        json={"source": "pending", "target": "done", "mode": "all"},
        headers=auth_headers(),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["units"] == _units(done=3)
    assert response.json()["completed"] is True

    response = client.post(
        f"/items/{item['id']}/units/move",
        json={"source": "pending", "target": "done"},
        headers=auth_headers(),
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["error"] == "no_units_available"


def test_move_units_rejects_unknown_stage(client):
    item = create_item(client, create_list(client)["id"])
    response = client.post(
        f"/items/{item['id']}/units/move",
        json={"source": "pending", "target": "teleported"},
        headers=auth_headers(),
    )
    assert response.status_code == 422


def test_progress_and_toggle_endpoints(client):
    item = create_item(client, create_list(client)["id"], quantity=1)

    response = client.post(f"/items/{item['id']}/progress", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "done"

    response = client.post(f"/items/{item['id']}/toggle", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "shipped"


def test_items_are_scoped_to_their_owner(client):
    item = create_item(client, create_list(client)["id"], quantity=2)
    stranger = auth_headers(STRANGER)

    assert client.get(f"/items/{item['id']}", headers=stranger).status_code == 404
    assert client.put(f"/items/{item['id']}", json={"name": "x"}, headers=stranger).status_code == 404
    assert client.delete(f"/items/{item['id']}", headers=stranger).status_code == 404

    response = client.post(f"/items/{item['id']}/progress", headers=stranger)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["error"] == "not_found"

    response = client.get(f"/items/{item['id']}", headers=auth_headers())
    assert response.json()["units"] == _units(pending=2)


def test_persistence_errors_map_to_service_unavailable(client, monkeypatch):
    item = create_item(client, create_list(client)["id"])

    def _unavailable(self, item_id):
        return LedgerResult.failure(LedgerErrorKind.PERSISTENCE_ERROR, "Failed to update shopping item")

    monkeypatch.setattr(ledger_service.UnitLedger, "progress_to_next_stage", _unavailable)

    response = client.post(f"/items/{item['id']}/progress", headers=auth_headers())
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_unit_endpoints_on_legacy_schema(legacy_database, app):
    legacy_database(with_status=True)
    client = TestClient(app)
    item = create_item(client, create_list(client)["id"], quantity=2)
    assert item["units"] is None

    response = client.put(f"/items/{item['id']}/units", json={"done": 2}, headers=auth_headers())
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["error"] == "unit_tracking_unavailable"

    response = client.post(f"/items/{item['id']}/toggle", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "done"

    schema = client.get("/schema").json()
    assert schema["unit_tracking"] == "legacy"
    assert schema["legacy_shape"] == "status"
