"""Structured logging for topic-quiz commands.

Every command writes JSON lines to a rotating file inside the workspace
``logs`` directory. ``--verbose`` additionally mirrors records to stderr
through Rich so they interleave cleanly with the quiz console.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
]

_FILE_MARKER = "_topic_quiz_file"
_CONSOLE_MARKER = "_topic_quiz_console"

# Attributes every LogRecord carries; anything else came in via ``extra``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JsonLogFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=True)


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach the JSON file handler (and optionally Rich) to ``name``.

    Calling this repeatedly for the same logger reuses its handlers, which
    keeps restarts and test runs from stacking duplicate output.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    file_level = logging.DEBUG if verbose else _level_from_name(level)
    log_name = filename or f"{name.rsplit('.', 1)[-1]}.log"
    handler, log_path = _file_handler_for(
        logger,
        _writable_dir(log_dir) / log_name,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    handler.setLevel(file_level)

    _toggle_console(logger, enabled=verbose)
    return logger, log_path


def _level_from_name(level: str) -> int:
    numeric = logging.getLevelName(str(level).upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def _file_handler_for(
    logger: logging.Logger,
    path: Path,
    *,
    max_bytes: int,
    backup_count: int,
) -> tuple[RotatingFileHandler, Path]:
    for existing in logger.handlers:
        if getattr(existing, _FILE_MARKER, False):
            if existing.baseFilename == os.path.abspath(path):  # type: ignore[attr-defined]
                return existing, path  # type: ignore[return-value]
            logger.removeHandler(existing)
            existing.close()
            break
    try:
        handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except PermissionError:
        path = _writable_dir(_fallback_dir()) / path.name
        handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    try:
        path.chmod(0o600)
    except (PermissionError, FileNotFoundError):  # pragma: no cover
        pass
    handler.setFormatter(JsonLogFormatter())
    setattr(handler, _FILE_MARKER, True)
    logger.addHandler(handler)
    return handler, path


def _toggle_console(logger: logging.Logger, *, enabled: bool) -> None:
    current = [
        handler
        for handler in logger.handlers
        if getattr(handler, _CONSOLE_MARKER, False)
    ]
    if enabled and not current:
        console = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
        )
        console.setLevel(logging.DEBUG)
        setattr(console, _CONSOLE_MARKER, True)
        logger.addHandler(console)
    elif not enabled:
        for handler in current:
            logger.removeHandler(handler)
            handler.close()


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return repr(value)


def _writable_dir(log_dir: Path) -> Path:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        log_dir = _fallback_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _fallback_dir() -> Path:
    return Path(tempfile.gettempdir()) / "topic-quiz-logs"
