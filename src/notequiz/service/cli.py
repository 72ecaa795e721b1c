"""``notequiz serve``: run the HTTP service with uvicorn."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

import uvicorn

from ..core.workspace import WorkspaceError
from ..quizzer.config import ConfigOverrides, QuizzerConfigError, load_settings
from .app import create_app


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notequiz serve",
        description="Serve the extract/topics/generate/verify HTTP endpoints.",
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config", type=Path, help="Path to notequiz.toml")
    parser.add_argument("--workspace", type=Path)
    parser.add_argument("--model", help="Chat model override")
    parser.add_argument("--log-level", help="Logging level (default INFO)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        loaded = load_settings(
            config_path=args.config,
            overrides=ConfigOverrides(
                model=args.model, log_level=args.log_level
            ),
            workspace_path=args.workspace,
        )
    except (QuizzerConfigError, WorkspaceError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    app = create_app(loaded.settings, log_dir=loaded.layout.path_for("logs"))
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=loaded.settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
