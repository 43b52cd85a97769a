"""Tests for logging utilities and sensitive data redaction."""

from __future__ import annotations

import json
import logging

import pytest

from shoptrack.logging_utils import configure_logging


def _record(msg: str, args=(), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="shoptrack.test.logging",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.parametrize("fmt", ["plain", "json"])
def test_sensitive_data_filter_redacts_tokens(fmt):
    secret = "top-secret-token"
    configure_logging("INFO", fmt, [secret])

    handler = logging.getLogger().handlers[0]
    record = _record("Authorization header Bearer %s", (secret,))

    for filter_ in handler.filters:
        filter_.filter(record)

    formatted = handler.format(record)
    assert secret not in formatted
    assert "[redacted]" in formatted


def test_query_string_tokens_are_redacted():
    configure_logging("INFO", "plain", [])

    handler = logging.getLogger().handlers[0]
    record = _record("GET /lists?api_token=abc123&page=2")
    for filter_ in handler.filters:
        filter_.filter(record)

    assert "abc123" not in handler.format(record)


def test_json_records_carry_ledger_context():
    configure_logging("DEBUG", "json", [])

    handler = logging.getLogger().handlers[0]
    record = _record(
        "Ledger move_units rejected",
        user_id="user-alice",
        item_id=7,
        operation="move_units",
    )

    payload = json.loads(handler.format(record))
    assert payload["level"] == "INFO"
    assert payload["user_id"] == "user-alice"
    assert payload["item_id"] == 7
    assert payload["operation"] == "move_units"
    assert "request_id" not in payload
