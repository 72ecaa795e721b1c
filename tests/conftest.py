from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from fixtures import ScriptedOpenAI, WorkspaceBuilder  # noqa: E402

from notequiz.core.ai import ChatClient  # noqa: E402
from notequiz.quizzer.config import Settings  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep tests away from real credentials and the user's workspace."""

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
    for key in (
        "CONFIG",
        "MODEL",
        "VISION_MODEL",
        "REQUEST_TIMEOUT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(f"NOTEQUIZ_{key}", raising=False)
    monkeypatch.setenv("NOTEQUIZ_DATA_HOME", str(tmp_path / "notequiz-home"))
    monkeypatch.setattr("notequiz.core.ai.load_dotenv", lambda *a, **k: False)


@pytest.fixture
def openai_stub() -> ScriptedOpenAI:
    """A fresh scripted OpenAI-compatible client; queue replies on it."""

    return ScriptedOpenAI()


@pytest.fixture
def chat(openai_stub: ScriptedOpenAI) -> ChatClient:
    return ChatClient(model="test-model", client=openai_stub)


@pytest.fixture
def settings() -> Settings:
    return Settings(model="test-model")


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)
