from __future__ import annotations

import json
from pathlib import Path

from fixtures import FixedRandom, mcq
from topic_quiz.quiz import ledger as ledger_mod
from topic_quiz.quiz.ledger import (
    HighScoreLedger,
    JsonFileStore,
    MemoryStore,
    ScoreEntry,
    StorageError,
    TopicPreference,
)
from topic_quiz.quiz.session import start_session


def _completed_session(correct: int, total: int, topics=()):
    bank = [mcq(i, "t", choices=("a", "b"), answer=0) for i in range(total)]
    session = start_session(bank, list(topics), total, rng=FixedRandom())
    for position, question in enumerate(session.order):
        session.record_answer(question.id, 0 if position < correct else 1)
        session.advance()
    assert session.submit()
    return session


def _entry(percent: int, total: int = 10, date: int = 0) -> ScoreEntry:
    return ScoreEntry(
        date=date, percent=percent, correct=0, total=total, topics="all"
    )


class BrokenStore:
    def get(self, key):
        raise StorageError("disk on fire")

    def set(self, key, value):
        raise StorageError("disk on fire")

    def delete(self, key):
        raise StorageError("disk on fire")


def test_record_sorts_by_percent_descending() -> None:
    ledger = HighScoreLedger(MemoryStore())
    for percent in (80, 95, 70):
        ledger.save(ledger.load() + [_entry(percent)])

    ledger.record(_completed_session(1, 2), now=1_700_000_000)

    assert [e.percent for e in ledger.load()] == [95, 80, 70, 50]


def test_record_builds_entry_from_session() -> None:
    ledger = HighScoreLedger(MemoryStore())

    entry = ledger.record(
        _completed_session(7, 8, topics=("t", "x")), now=1_700_000_000.5
    )

    assert entry == ScoreEntry(
        date=1_700_000_000_500,
        percent=88,
        correct=7,
        total=8,
        topics="t,x",
    )
    assert ledger.load() == [entry]


def test_record_uses_all_for_unfiltered_sessions() -> None:
    ledger = HighScoreLedger(MemoryStore())
    entry = ledger.record(_completed_session(1, 1))
    assert entry is not None
    assert entry.topics == "all"
    assert entry.percent == 100


def test_ties_prefer_smaller_total() -> None:
    ranked = ledger_mod.ranked(
        [_entry(80, total=10), _entry(80, total=5), _entry(90, total=20)]
    )
    assert [(e.percent, e.total) for e in ranked] == [
        (90, 20),
        (80, 5),
        (80, 10),
    ]


def test_ledger_keeps_best_fifty() -> None:
    ledger = HighScoreLedger(MemoryStore())
    ledger.save([_entry(p % 100, date=p) for p in range(60)])

    ledger.record(_completed_session(1, 1))

    entries = ledger.load()
    assert len(entries) == ledger_mod.MAX_ENTRIES
    assert entries[0].percent == 100
    assert len(ledger.top()) == ledger_mod.DISPLAY_LIMIT
    assert ledger.top(3) == entries[:3]


def test_incomplete_or_empty_sessions_are_not_recorded() -> None:
    ledger = HighScoreLedger(MemoryStore())
    pending = start_session([mcq(1)], [], 1)
    empty = start_session([], [], 5)

    assert ledger.record(pending) is None
    assert ledger.record(empty) is None
    assert ledger.load() == []


def test_load_recovers_from_corrupt_data() -> None:
    store = MemoryStore({ledger_mod.HIGH_SCORES_KEY: "{not json"})
    assert HighScoreLedger(store).load() == []

    store.set(ledger_mod.HIGH_SCORES_KEY, json.dumps({"percent": 3}))
    assert HighScoreLedger(store).load() == []

    store.set(
        ledger_mod.HIGH_SCORES_KEY,
        json.dumps(
            [
                {"date": 1, "percent": 50, "correct": 1, "total": 2,
                 "topics": ""},
                {"percent": "lots"},
                "junk",
            ]
        ),
    )
    assert HighScoreLedger(store).load() == [
        ScoreEntry(date=1, percent=50, correct=1, total=2, topics="all")
    ]


def test_load_ignores_out_of_range_and_deeply_nested_data() -> None:
    store = MemoryStore(
        {
            ledger_mod.HIGH_SCORES_KEY: (
                '[{"date": Infinity, "percent": 90, "correct": 9,'
                ' "total": 10, "topics": "all"},'
                ' {"date": 1, "percent": 1e400, "correct": 1, "total": 2}]'
            )
        }
    )
    ledger = HighScoreLedger(store)
    assert ledger.load() == []
    assert ledger.record(_completed_session(1, 1)) is not None
    assert [entry.percent for entry in ledger.load()] == [100]

    nested = "[" * 100000 + "]" * 100000
    store.set(ledger_mod.HIGH_SCORES_KEY, nested)
    store.set(ledger_mod.TOPICS_KEY, nested)
    assert ledger.load() == []
    assert TopicPreference(store).load() == []


def test_json_file_store_survives_deeply_nested_file(tmp_path: Path) -> None:
    path = tmp_path / "scores.json"
    path.write_text("[" * 100000 + "]" * 100000, encoding="utf-8")

    assert HighScoreLedger(JsonFileStore(path)).load() == []


def test_storage_failures_are_swallowed() -> None:
    ledger = HighScoreLedger(BrokenStore())

    assert ledger.load() == []
    assert ledger.save([_entry(10)]) is False
    assert ledger.record(_completed_session(1, 1)) is not None
    assert ledger.clear() is False


def test_clear_removes_scores() -> None:
    store = MemoryStore()
    ledger = HighScoreLedger(store)
    ledger.record(_completed_session(1, 1))

    assert ledger.clear() is True
    assert ledger.load() == []


def test_json_file_store_round_trips_and_shares_file(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "scores.json"
    store = JsonFileStore(path)
    ledger = HighScoreLedger(store)
    prefs = TopicPreference(store)

    ledger.record(_completed_session(1, 2))
    prefs.save(["coding", "maths"])

    reopened = JsonFileStore(path)
    assert HighScoreLedger(reopened).load()[0].percent == 50
    assert TopicPreference(reopened).load() == ["coding", "maths"]
    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"highScores", "quizTopics"}
    assert not list(path.parent.glob(".scores-*"))


def test_json_file_store_replaces_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "scores.json"
    path.write_text("garbage", encoding="utf-8")
    ledger = HighScoreLedger(JsonFileStore(path))

    assert ledger.load() == []
    assert ledger.record(_completed_session(1, 1)) is not None
    assert len(ledger.load()) == 1


def test_json_file_store_missing_file(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path / "absent.json")
    assert store.get("highScores") is None
    store.delete("highScores")
    assert not (tmp_path / "absent.json").exists()


def test_clear_resets_unreadable_file(tmp_path: Path) -> None:
    path = tmp_path / "scores.json"
    path.write_text("garbage", encoding="utf-8")
    ledger = HighScoreLedger(JsonFileStore(path))

    assert ledger.clear() is True
    assert json.loads(path.read_text(encoding="utf-8")) == {}
    assert ledger.load() == []


def test_topic_preference_tolerates_bad_data() -> None:
    store = MemoryStore({ledger_mod.TOPICS_KEY: "oops"})
    prefs = TopicPreference(store)
    assert prefs.load() == []

    store.set(ledger_mod.TOPICS_KEY, json.dumps({"a": 1}))
    assert prefs.load() == []

    store.set(ledger_mod.TOPICS_KEY, json.dumps(["a", 3, "", "b"]))
    assert prefs.load() == ["a", "b"]

    assert prefs.clear() is True
    assert prefs.load() == []
    assert TopicPreference(BrokenStore()).load() == []
    assert TopicPreference(BrokenStore()).save(["a"]) is False
