"""Persisted high scores and topic preference.

Both live in a small key-value store holding JSON text under two keys,
``highScores`` and ``quizTopics``. Scores are not critical data, so every
storage or decoding failure is logged and absorbed here: the quiz keeps
working with an empty ledger or no saved topic filter.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol

from .session import QuizSession

logger = logging.getLogger(__name__)

HIGH_SCORES_KEY = "highScores"
TOPICS_KEY = "quizTopics"
MAX_ENTRIES = 50
DISPLAY_LIMIT = 10
SCORES_FILENAME = "scores.json"


class StorageError(RuntimeError):
    """Raised by stores when the backing file cannot be read or written."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, handy for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Key-value store backed by one JSON object file.

    Writes go to a temp file in the same directory and are moved into place
    so a crash mid-write never leaves a truncated file behind.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError, RecursionError) as exc:
            raise StorageError(f"Unable to read {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StorageError(f"{self.path} does not hold a JSON object")
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".scores-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Unable to write {self.path}: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StorageError:
            # A corrupt file is replaced rather than blocking new scores.
            data = {}
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        try:
            data = self._read_all()
        except StorageError:
            # Nothing readable is left to keep; reset the file.
            self._write_all({})
            return
        if data.pop(key, None) is not None:
            self._write_all(data)


@dataclass(frozen=True)
class ScoreEntry:
    """One completed session as stored in the ledger."""

    date: int
    percent: int
    correct: int
    total: int
    topics: str

    @classmethod
    def from_dict(cls, raw: object) -> Optional["ScoreEntry"]:
        if not isinstance(raw, dict):
            return None
        try:
            values = {
                name: int(raw[name])
                for name in ("date", "percent", "correct", "total")
            }
        except (KeyError, TypeError, ValueError, OverflowError):
            return None
        topics = raw.get("topics") or "all"
        return cls(topics=str(topics), **values)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def ranked(entries: Iterable[ScoreEntry]) -> list[ScoreEntry]:
    """Best percent first; equal percents favour the shorter quiz."""

    return sorted(entries, key=lambda entry: (-entry.percent, entry.total))


class HighScoreLedger:
    def __init__(
        self, store: KeyValueStore, *, key: str = HIGH_SCORES_KEY
    ) -> None:
        self.store = store
        self.key = key

    def load(self) -> list[ScoreEntry]:
        try:
            raw = self.store.get(self.key)
            data = json.loads(raw) if raw else []
        except (StorageError, ValueError, RecursionError) as exc:
            logger.warning(
                "High scores unreadable; starting empty",
                extra={"error": str(exc)},
            )
            return []
        if not isinstance(data, list):
            return []
        entries = (ScoreEntry.from_dict(item) for item in data)
        return [entry for entry in entries if entry is not None]

    def save(self, entries: Iterable[ScoreEntry]) -> bool:
        payload = json.dumps([entry.to_dict() for entry in entries])
        try:
            self.store.set(self.key, payload)
        except StorageError as exc:
            logger.warning(
                "Failed to save high scores", extra={"error": str(exc)}
            )
            return False
        return True

    def record(
        self, session: QuizSession, *, now: Optional[float] = None
    ) -> Optional[ScoreEntry]:
        """Add a completed session and keep the best :data:`MAX_ENTRIES`.

        Returns the new entry, or None for unfinished or empty sessions.
        """

        if not session.complete or session.total == 0:
            return None
        timestamp = time.time() if now is None else now
        entry = ScoreEntry(
            date=int(timestamp * 1000),
            percent=session.percent,
            correct=session.score,
            total=session.total,
            topics=",".join(session.topics) if session.topics else "all",
        )
        entries = self.load()
        entries.append(entry)
        self.save(ranked(entries)[:MAX_ENTRIES])
        logger.info("Recorded high score", extra=entry.to_dict())
        return entry

    def top(self, limit: int = DISPLAY_LIMIT) -> list[ScoreEntry]:
        return ranked(self.load())[:limit]

    def clear(self) -> bool:
        try:
            self.store.delete(self.key)
        except StorageError as exc:
            logger.warning(
                "Failed to clear high scores", extra={"error": str(exc)}
            )
            return False
        return True


class TopicPreference:
    """The saved topic filter; unreadable data means "all topics"."""

    def __init__(self, store: KeyValueStore, *, key: str = TOPICS_KEY) -> None:
        self.store = store
        self.key = key

    def load(self) -> list[str]:
        try:
            raw = self.store.get(self.key)
            data = json.loads(raw) if raw else []
        except (StorageError, ValueError, RecursionError):
            return []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, str) and item]

    def save(self, topics: Iterable[str]) -> bool:
        try:
            self.store.set(self.key, json.dumps(list(topics)))
        except StorageError as exc:
            logger.warning(
                "Failed to save topic preference", extra={"error": str(exc)}
            )
            return False
        return True

    def clear(self) -> bool:
        try:
            self.store.delete(self.key)
        except StorageError:
            return False
        return True
