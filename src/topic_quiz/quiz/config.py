"""Configuration loader for quiz sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from topic_quiz.core import config as core_config
from topic_quiz.core import workspace as workspace_mod

from .bank import QUIZ_LENGTH
from .ledger import SCORES_FILENAME

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "TOPIC_QUIZ_CONFIG"
ENV_PREFIX = "TOPIC_QUIZ_"

_DEFAULT_LOG_LEVEL = "INFO"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved settings for a quiz run."""

    length: int
    bank_path: Optional[Path]
    topics: tuple[str, ...]
    explain: bool
    scores_file: Path
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    length: Optional[int] = None
    bank_path: Optional[Path] = None
    explain: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    """Resolved config plus the workspace it was resolved against."""

    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults.

    A missing default config file is fine; a missing file that was asked for
    explicitly (``--config`` or ``$TOPIC_QUIZ_CONFIG``) is an error.
    """

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc

    requested = _resolve_config_path(
        config_path, env_map, layout.path_for("config") / CONFIG_FILENAME
    )
    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        loaded_path = requested
        try:
            core_config.merge_defaults(
                table, core_config.load_toml(requested)
            )
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
    elif config_path is not None or (env_map.get(CONFIG_ENV) or "").strip():
        raise QuizConfigError(f"Config file not found: {requested}")

    quiz = table["quiz"]
    try:
        length = core_config.coerce_positive_int(
            _pick_first(
                overrides.length, _env(env_map, "LENGTH"), quiz["length"]
            ),
            key="quiz.length",
        )
        bank_path = core_config.coerce_optional_path(
            _pick_first(
                overrides.bank_path, _env(env_map, "BANK"), quiz["bank"]
            ),
            key="quiz.bank",
        )
        topics = core_config.coerce_string_list(
            _pick_first(_env(env_map, "TOPICS"), quiz["topics"]),
            key="quiz.topics",
        )
        scores_file = core_config.coerce_optional_path(
            _pick_first(
                _env(env_map, "SCORES_FILE"), table["storage"]["scores_file"]
            ),
            key="storage.scores_file",
        )
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc

    config = QuizConfig(
        length=length,
        bank_path=_anchor(bank_path, Path.cwd()) if bank_path else None,
        topics=topics,
        explain=_resolve_bool(
            overrides.explain, _env(env_map, "EXPLAIN"), quiz["explain"]
        ),
        scores_file=_anchor(scores_file, layout.home)
        if scores_file
        else layout.path_for("scores") / SCORES_FILENAME,
        log_level=_resolve_log_level(
            overrides.log_level,
            _env(env_map, "LOG_LEVEL"),
            table["logging"]["level"],
        ),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "quiz": {
            "length": QUIZ_LENGTH,
            "bank": "",
            "topics": [],
            "explain": True,
        },
        "storage": {"scores_file": ""},
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    explicit: Optional[Path], env_map: Mapping[str, str], default: Path
) -> Path:
    if explicit is not None:
        return explicit.expanduser()
    candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if candidate:
        return Path(candidate).expanduser()
    return default


def _env(env_map: Mapping[str, str], name: str) -> Optional[str]:
    value = env_map.get(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def _pick_first(*values: object) -> object:
    for value in values:
        if value is not None:
            return value
    return None


def _anchor(path: Path, base: Path) -> Path:
    if not path.is_absolute():
        return (base / path).resolve()
    return path.resolve()


def _resolve_bool(*values: object) -> bool:
    value = _pick_first(*values)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise QuizConfigError(f"Expected a boolean value, found {value!r}.")


def _resolve_log_level(*values: object) -> str:
    value = _pick_first(*values)
    if not isinstance(value, str) or value.strip().upper() not in _LOG_LEVELS:
        expected = ", ".join(_LOG_LEVELS)
        raise QuizConfigError(
            f"Unknown log level {value!r}. Expected one of: {expected}."
        )
    return value.strip().upper()
