from __future__ import annotations

import random
from collections import Counter

from fixtures import FixedRandom, boolean, fill, make_bank, mcq
from topic_quiz.quiz import grader
from topic_quiz.quiz.session import (
    SessionState,
    TopicSummary,
    percent_of,
    start_session,
)


def _answer_correctly(session) -> None:
    question = session.current
    if question.type == "mcq":
        session.record_answer(question.id, question.answer)
    elif question.type == "boolean":
        session.record_answer(question.id, 0 if question.answer else 1)
    else:
        session.record_answer(question.id, question.answer)


def test_start_session_resets_state() -> None:
    session = start_session(make_bank({"a": 3}), [], 2, rng=FixedRandom())

    assert session.total == 2
    assert session.current_index == 0
    assert session.answers == {}
    assert session.score == 0
    assert session.complete is False
    assert session.state is SessionState.IN_PROGRESS


def test_single_question_session_starts_at_last_question() -> None:
    session = start_session([mcq(1)], [], 5)
    assert session.state is SessionState.AT_LAST_QUESTION


def test_empty_bank_gives_empty_session() -> None:
    session = start_session([], ["a"], 10)

    assert session.state is SessionState.EMPTY
    assert session.current is None
    assert session.can_advance() is False
    assert session.submit() is False
    assert session.complete is False


def test_advance_requires_answer() -> None:
    session = start_session(make_bank({"a": 3}), [], 3, rng=FixedRandom())
    first = session.current

    assert session.can_advance() is False
    assert session.advance() is False
    assert session.current_index == 0

    assert session.record_answer(first.id, 0) is True
    assert session.can_advance() is True
    assert session.advance() is True
    assert session.current_index == 1


def test_blank_fill_answer_does_not_unlock_navigation() -> None:
    session = start_session(
        [fill(1), fill(2)], [], 2, rng=FixedRandom()
    )
    assert session.record_answer(1, "   ") is True
    assert session.answers[1] == ""
    assert session.can_advance() is False

    session.record_answer(1, "  rome ")
    assert session.answers[1] == "rome"
    assert session.advance() is True


def test_record_answer_rejects_unknown_ids_and_bad_indexes() -> None:
    session = start_session([mcq(1), mcq(2)], [], 2, rng=FixedRandom())

    assert session.record_answer(99, 0) is False
    assert session.record_answer(1, 7) is False
    assert session.record_answer(1, "nope") is False
    assert session.answers == {}


def test_answers_can_be_changed_before_submit() -> None:
    session = start_session([mcq(1, answer=1)], [], 1, rng=FixedRandom())
    session.record_answer(1, 0)
    session.record_answer(1, 1)
    assert session.submit() is True
    assert session.score == 1


def test_submit_only_at_last_question() -> None:
    session = start_session(make_bank({"a": 2}), [], 2, rng=FixedRandom())
    _answer_correctly(session)

    assert session.can_submit() is False
    assert session.submit() is False
    assert session.complete is False

    session.advance()
    assert session.state is SessionState.AT_LAST_QUESTION
    assert session.can_advance() is False
    assert session.submit() is False

    _answer_correctly(session)
    assert session.submit() is True
    assert session.complete is True
    assert session.state is SessionState.COMPLETE


def test_submit_is_idempotent() -> None:
    session = start_session([mcq(1, answer=1)], [], 1, rng=FixedRandom())
    session.record_answer(1, 1)
    assert session.submit() is True
    assert session.score == 1

    session.answers[1] = 0
    assert session.submit() is False
    assert session.score == 1
    assert session.record_answer(1, 0) is False


def test_end_to_end_two_topics() -> None:
    bank = [
        mcq(1, "geo", answer=0),
        boolean(2, "geo", answer=False),
        fill(3, "history", answer="China"),
        mcq(4, "history", choices=("x", "y"), answer=1),
    ]
    session = start_session(bank, [], 4, rng=random.Random(7))

    assert Counter(q.topic for q in session.order) == {"geo": 2, "history": 2}
    assert len({q.id for q in session.order}) == 4

    expected_correct = 0
    for position, question in enumerate(session.order):
        assert session.complete is False
        if position % 2 == 0:
            _answer_correctly(session)
            expected_correct += 1
        elif question.type == "fill":
            session.record_answer(question.id, "Japan")
        elif question.type == "boolean":
            session.record_answer(question.id, 0 if not question.answer else 1)
        else:
            wrong = (question.answer + 1) % len(question.choices)
            session.record_answer(question.id, wrong)
        if position < 3:
            assert session.submit() is False
            assert session.advance() is True

    assert session.submit() is True
    assert session.complete is True
    assert session.score == expected_correct == 2
    assert session.score == grader.calculate_score(
        session.order, session.answers
    )
    assert session.percent == 50


def test_restart_reselects_with_same_parameters() -> None:
    bank = make_bank({"a": 5, "b": 5})
    session = start_session(bank, ["a"], 3, rng=random.Random(1))
    _answer_correctly(session)

    fresh = session.restart()

    assert fresh is not session
    assert fresh.topics == ("a",)
    assert fresh.length == 3
    assert fresh.total == 3
    assert fresh.answers == {}
    assert fresh.current_index == 0
    assert all(q.topic == "a" for q in fresh.order)
    assert session.answers


def test_review_reports_each_question() -> None:
    bank = [
        mcq(1, "geo", choices=("a", "b"), answer=1),
        fill(2, "history", answer="China"),
    ]
    session = start_session(bank, [], 2, rng=FixedRandom())
    session.record_answer(1, 1)
    session.advance()
    session.record_answer(2, "japan")
    session.submit()

    summary = session.review()

    assert summary.total_questions == 2
    assert summary.correct_answers == 1
    assert summary.answered_questions == 2
    assert summary.percent == 50
    first, second = summary.responses
    assert first.selected_text == "b" and first.is_correct
    assert second.selected_text == "japan" and not second.is_correct
    assert second.answer_text == "China"
    assert second.explanation == "It is China."
    assert summary.per_topic["geo"] == TopicSummary("geo", 1, 1)
    assert summary.per_topic["history"].accuracy == 0.0

    hidden = session.review(show_explanations=False)
    assert all(r.explanation is None for r in hidden.responses)


def test_percent_rounds_half_up() -> None:
    assert percent_of(7, 8) == 88
    assert percent_of(1, 8) == 13
    assert percent_of(1, 3) == 33
    assert percent_of(2, 3) == 67
    assert percent_of(0, 0) == 0
