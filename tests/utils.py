"""Identities shared across the test suite."""

from __future__ import annotations

OWNER = "user-alice"
STRANGER = "user-bob"
