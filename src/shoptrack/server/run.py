"""Run the Shoptrack API under uvicorn with settings taken from the environment."""

from __future__ import annotations

import asyncio
import os
from typing import Optional

import uvicorn

APP_PATH = "shoptrack.server.app:app"


async def _serve_for(server: uvicorn.Server, duration: float) -> None:
    """Serve until ``duration`` seconds have elapsed, then request shutdown."""

    async def _stop_later() -> None:
        await asyncio.sleep(duration)
        server.should_exit = True

    asyncio.create_task(_stop_later())
    await server.serve()


def _parse_duration(value: str | None) -> Optional[float]:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid SHOPTRACK_SERVER_DURATION '{value}': {exc}") from exc
    if seconds <= 0:
        raise SystemExit("SHOPTRACK_SERVER_DURATION must be greater than 0 when provided.")
    return seconds


def main() -> None:
    host = os.environ.get("SHOPTRACK_SERVER_HOST", "127.0.0.1")
    port = int(os.environ.get("SHOPTRACK_SERVER_PORT", "8000"))
    reload_enabled = os.environ.get("SHOPTRACK_SERVER_RELOAD") == "1"
    duration = _parse_duration(os.environ.get("SHOPTRACK_SERVER_DURATION"))

    if reload_enabled:
        if duration is not None:
            raise SystemExit("Unset SHOPTRACK_SERVER_RELOAD when SHOPTRACK_SERVER_DURATION is set.")
        uvicorn.run(APP_PATH, host=host, port=port, reload=True)
        return

    server = uvicorn.Server(uvicorn.Config(APP_PATH, host=host, port=port, reload=False))
    if duration is None:
        server.run()
    else:
        asyncio.run(_serve_for(server, duration))


if __name__ == "__main__":
    main()
