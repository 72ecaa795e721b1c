"""Core shared helpers for notequiz."""

from __future__ import annotations

from .ai import (
    ChatClient,
    RemoteCallError,
    RemoteErrorKind,
    classify_exception,
    load_client,
)
from .config import (
    TomlConfigError,
    env_string,
    load_toml,
    merge_defaults,
    pick_first,
    write_toml_template,
)
from .config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
    get_template,
    iter_templates,
)
from .logging import JsonLogFormatter, close_logger, configure_logger
from .responses import ParseResult, parse_json_reply, strip_code_fence
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "ChatClient",
    "RemoteCallError",
    "RemoteErrorKind",
    "classify_exception",
    "load_client",
    "TomlConfigError",
    "env_string",
    "load_toml",
    "merge_defaults",
    "pick_first",
    "write_toml_template",
    "ConfigTemplate",
    "ConfigTemplateError",
    "get_template",
    "iter_templates",
    "JsonLogFormatter",
    "close_logger",
    "configure_logger",
    "ParseResult",
    "parse_json_reply",
    "strip_code_fence",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]
