"""Configuration loader for the quiz pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from ..core import config as core_config
from ..core import workspace as workspace_mod
from ..core.ai import ChatClient
from .errors import ConfigurationError
from .models import QuizConfig

CONFIG_FILENAME = "notequiz.toml"
CONFIG_ENV = "NOTEQUIZ_CONFIG"
ENV_PREFIX = "NOTEQUIZ_"

DEFAULT_MODEL = "gpt-4o-mini"
MAX_PDF_PAGES = 50
MAX_INPUT_BYTES = 10 * 1024 * 1024
IMAGE_TIMEOUT_SECONDS = 120.0
TOPIC_MAX_CHARS = 30_000
GRADING_CONTEXT_CHARS = 1000


class QuizzerConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class Settings:
    """Fully resolved pipeline settings."""

    model: str = DEFAULT_MODEL
    vision_model: str = DEFAULT_MODEL
    request_timeout: float = 60.0
    max_pdf_pages: int = MAX_PDF_PAGES
    max_bytes: int = MAX_INPUT_BYTES
    image_timeout: float = IMAGE_TIMEOUT_SECONDS
    topic_max_chars: int = TOPIC_MAX_CHARS
    grading_context_chars: int = GRADING_CONTEXT_CHARS
    quiz: QuizConfig = field(default_factory=QuizConfig)
    log_level: str = "INFO"

    def chat_client(self, client: Any | None = None) -> ChatClient:
        return ChatClient(
            model=self.model,
            vision_model=self.vision_model,
            request_timeout=self.request_timeout,
            client=client,
        )


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    model: Optional[str] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    settings: Settings
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_settings(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load settings applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    default_path = layout.path_for("config") / CONFIG_FILENAME
    requested = _resolve_config_path(config_path, env_map, default_path)

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        loaded_path = requested
        try:
            core_config.merge_defaults(
                table, core_config.load_toml(requested)
            )
        except core_config.TomlConfigError as exc:
            raise QuizzerConfigError(str(exc)) from exc
    elif config_path is not None or core_config.env_string(
        env_map, ENV_PREFIX, "CONFIG"
    ):
        raise QuizzerConfigError(f"Config file not found: {requested}")

    def env(key: str) -> Optional[str]:
        return core_config.env_string(env_map, ENV_PREFIX, key)

    ai = table["ai"]
    extraction = table["extraction"]
    quiz = table["quiz"]

    model = core_config.pick_first(overrides.model, env("MODEL"), ai["model"])
    vision_model = core_config.pick_first(
        env("VISION_MODEL"), ai["vision_model"], model
    )
    log_level = core_config.pick_first(
        overrides.log_level, env("LOG_LEVEL"), table["logging"]["level"]
    )

    try:
        quiz_defaults = QuizConfig.create(
            quiz["num_questions"], quiz["difficulty"], quiz["question_types"]
        )
    except ConfigurationError as exc:
        raise QuizzerConfigError(f"[quiz] {exc}") from exc

    settings = Settings(
        model=_require_text(model, "ai.model"),
        vision_model=_require_text(vision_model, "ai.vision_model"),
        request_timeout=_positive_number(
            core_config.pick_first(
                env("REQUEST_TIMEOUT"), ai["request_timeout"]
            ),
            "ai.request_timeout",
        ),
        max_pdf_pages=int(
            _positive_number(extraction["max_pdf_pages"], "max_pdf_pages")
        ),
        max_bytes=int(_positive_number(extraction["max_bytes"], "max_bytes")),
        image_timeout=_positive_number(
            extraction["image_timeout"], "extraction.image_timeout"
        ),
        topic_max_chars=int(
            _positive_number(table["topics"]["max_chars"], "topics.max_chars")
        ),
        grading_context_chars=int(
            _positive_number(
                table["grading"]["context_chars"], "grading.context_chars"
            )
        ),
        quiz=quiz_defaults,
        log_level=_require_text(log_level, "logging.level").upper(),
    )
    return LoadResult(settings=settings, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    defaults = Settings()
    return {
        "ai": {
            "model": DEFAULT_MODEL,
            "vision_model": None,
            "request_timeout": defaults.request_timeout,
        },
        "extraction": {
            "max_pdf_pages": MAX_PDF_PAGES,
            "max_bytes": MAX_INPUT_BYTES,
            "image_timeout": IMAGE_TIMEOUT_SECONDS,
        },
        "topics": {"max_chars": TOPIC_MAX_CHARS},
        "quiz": {
            "num_questions": defaults.quiz.num_questions,
            "difficulty": defaults.quiz.difficulty.value,
            "question_types": defaults.quiz.question_types.value,
        },
        "grading": {"context_chars": GRADING_CONTEXT_CHARS},
        "logging": {"level": "INFO"},
    }


def _resolve_config_path(
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = core_config.env_string(env_map, ENV_PREFIX, "CONFIG")
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _require_text(value: object, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizzerConfigError(f"{label} must be a non-empty string.")
    return value.strip()


def _positive_number(value: object, label: str) -> float:
    if isinstance(value, bool):
        raise QuizzerConfigError(f"{label} must be a positive number.")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise QuizzerConfigError(f"{label} must be a positive number.") from exc
    if number <= 0:
        raise QuizzerConfigError(f"{label} must be a positive number.")
    return number
