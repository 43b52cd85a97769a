"""Prometheus metrics definitions for Shoptrack."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "shoptrack_http_requests_total",
    "Total number of HTTP requests processed by the Shoptrack API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "shoptrack_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Shoptrack API",
    ["method", "path"],
)

LEDGER_OPERATIONS = Counter(
    "shoptrack_ledger_operations_total",
    "Unit ledger operations by operation name and outcome",
    ["operation", "outcome"],
)

UNITS_MOVED = Counter(
    "shoptrack_units_moved_total",
    "Number of units moved between status buckets",
    ["source", "target"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "LEDGER_OPERATIONS",
    "UNITS_MOVED",
]
