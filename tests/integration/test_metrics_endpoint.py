"""Integration tests for metrics and schema endpoints."""

from __future__ import annotations

from tests.integration.utils import auth_headers, create_item, create_list


def test_metrics_endpoint_available(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    body = response.content.decode()
    assert "shoptrack_http_requests_total" in body
    assert "shoptrack_ledger_operations_total" in body


def test_ledger_operations_are_counted(client):
    item = create_item(client, create_list(client)["id"], quantity=2)
    client.post(f"/items/{item['id']}/progress", headers=auth_headers())

    body = client.get("/metrics").content.decode()
    assert 'shoptrack_ledger_operations_total{operation="progress_to_next_stage",outcome="ok"}' in body
    assert 'shoptrack_units_moved_total{source="pending",target="done"}' in body


def test_schema_endpoint_reports_unit_tracking(client):
    response = client.get("/schema")
    assert response.status_code == 200
    assert response.json() == {
        "unit_tracking": "enabled",
        "legacy_shape": "status",
        "has_status_column": True,
        "has_unit_columns": True,
    }
