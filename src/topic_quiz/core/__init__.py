"""Core shared helpers for topic-quiz commands."""

from __future__ import annotations

from .config import (
    ConfigTemplate,
    TomlConfigError,
    get_template,
    iter_templates,
    load_toml,
    merge_defaults,
    write_toml_template,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "ConfigTemplate",
    "TomlConfigError",
    "get_template",
    "iter_templates",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "JsonLogFormatter",
    "configure_logger",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]
