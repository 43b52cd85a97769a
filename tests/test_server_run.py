"""Tests for the uvicorn runner's environment handling."""

from __future__ import annotations

import pytest

from shoptrack.server import run


@pytest.mark.parametrize("raw, expected", [(None, None), ("", None), ("2.5", 2.5), ("30", 30.0)])
def test_parse_duration(raw, expected):
    assert run._parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "0", "-1"])
def test_parse_duration_rejects_invalid_values(raw):
    with pytest.raises(SystemExit):
        run._parse_duration(raw)


def test_main_runs_reload_server_from_env(monkeypatch):
    calls = []
    monkeypatch.setenv("SHOPTRACK_SERVER_HOST", "0.0.0.0")
    monkeypatch.setenv("SHOPTRACK_SERVER_PORT", "9001")
    monkeypatch.setenv("SHOPTRACK_SERVER_RELOAD", "1")
    monkeypatch.delenv("SHOPTRACK_SERVER_DURATION", raising=False)
    monkeypatch.setattr(run.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    run.main()

    assert calls == [((run.APP_PATH,), {"host": "0.0.0.0", "port": 9001, "reload": True})]


def test_main_refuses_reload_with_duration(monkeypatch):
    monkeypatch.setenv("SHOPTRACK_SERVER_RELOAD", "1")
    monkeypatch.setenv("SHOPTRACK_SERVER_DURATION", "5")
    monkeypatch.setattr(run.uvicorn, "run", lambda *args, **kwargs: pytest.fail("server started"))

    with pytest.raises(SystemExit):
        run.main()
