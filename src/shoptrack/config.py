"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/shoptrack.db"),
        description="SQLite database location.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for mutating endpoints.",
    )
    user_header: str = Field(
        default="X-User-ID",
        description="Header carrying the authenticated user id set by the upstream auth layer.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    auto_migrate_units: bool = Field(
        default=False,
        description="Add missing unit-tracking columns to shopping_items on startup.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("SHOPTRACK_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (api_token := _env("SHOPTRACK_API_TOKEN")):
        payload["api_token"] = api_token
    if (user_header := _env("SHOPTRACK_USER_HEADER")):
        payload["user_header"] = user_header
    if (log_level := _env("SHOPTRACK_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("SHOPTRACK_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (log_requests := _env("SHOPTRACK_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    if (auto_migrate := _env("SHOPTRACK_AUTO_MIGRATE_UNITS")):
        payload["auto_migrate_units"] = _coerce_bool(auto_migrate)
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
