from __future__ import annotations

import logging

from fastapi import FastAPI

from notequiz.core.logging import close_logger
from notequiz.service import cli as service_cli


def test_serve_runs_uvicorn_with_settings(tmp_path, monkeypatch):
    captured = {}

    def fake_run(app, **kwargs):
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(service_cli.uvicorn, "run", fake_run)

    try:
        code = service_cli.main(
            [
                "--workspace",
                str(tmp_path),
                "--port",
                "9001",
                "--log-level",
                "debug",
            ]
        )
    finally:
        close_logger(logging.getLogger("notequiz"))

    assert code == 0
    assert isinstance(captured["app"], FastAPI)
    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 9001
    assert captured["log_level"] == "debug"
    assert (tmp_path / "logs" / "notequiz.log").exists()


def test_serve_rejects_missing_config(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(
        service_cli.uvicorn,
        "run",
        lambda *a, **k: (_ for _ in ()).throw(AssertionError("ran")),
    )

    code = service_cli.main(
        ["--workspace", str(tmp_path), "--config", str(tmp_path / "x.toml")]
    )

    assert code == 2
    assert "Config file not found" in capsys.readouterr().err
