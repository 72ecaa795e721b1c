"""Shared testing fixtures for the notequiz test suite."""

from .chat import ScriptedOpenAI, StatusError  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "ScriptedOpenAI",
    "StatusError",
    "WorkspaceBuilder",
    "build_tree",
]
