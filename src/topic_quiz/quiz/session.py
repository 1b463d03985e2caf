"""Quiz session state machine.

A :class:`QuizSession` owns one run of the quiz: the fixed question order
chosen at start, the answers recorded so far, and the score once submitted.
Navigation only moves forward and is gated on the current question being
answered; callers check :meth:`QuizSession.can_advance` and
:meth:`QuizSession.can_submit` (or just read the boolean results of
:meth:`advance` and :meth:`submit`) instead of catching errors.
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from . import grader
from .bank import Question
from .grader import RecordedAnswer
from .selector import RandomSource, select_questions

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    EMPTY = "empty"
    IN_PROGRESS = "in_progress"
    AT_LAST_QUESTION = "at_last_question"
    COMPLETE = "complete"


@dataclass(frozen=True)
class QuestionResponse:
    """How one question was answered, for the post-submit review."""

    question_id: int
    question: str
    topic: str
    selected_text: str | None
    answer_text: str
    is_correct: bool
    explanation: str | None = None


@dataclass(frozen=True)
class TopicSummary:
    """Aggregate performance metrics for a single topic."""

    topic: str
    asked: int
    correct: int

    @property
    def accuracy(self) -> float:
        if self.asked == 0:
            return 0.0
        return self.correct / self.asked


@dataclass(frozen=True)
class QuizSummary:
    """Overall session summary derived from question responses."""

    total_questions: int
    correct_answers: int
    answered_questions: int
    percent: int
    responses: tuple[QuestionResponse, ...] = ()
    per_topic: dict[str, TopicSummary] = field(default_factory=dict)


def percent_of(correct: int, total: int) -> int:
    """Whole percentage, rounding halves up (``7/8`` -> 88)."""

    if total <= 0:
        return 0
    return int(math.floor(correct / total * 100 + 0.5))


@dataclass
class QuizSession:
    """Mutable state for a single quiz run."""

    bank: tuple[Question, ...]
    topics: tuple[str, ...]
    length: int
    order: tuple[Question, ...]
    rng: RandomSource | None = field(default=None, repr=False, compare=False)
    current_index: int = 0
    answers: dict[int, RecordedAnswer] = field(default_factory=dict)
    score: int = 0
    complete: bool = False

    @property
    def total(self) -> int:
        return len(self.order)

    @property
    def current(self) -> Question | None:
        if not self.order:
            return None
        return self.order[self.current_index]

    @property
    def state(self) -> SessionState:
        if self.complete:
            return SessionState.COMPLETE
        if not self.order:
            return SessionState.EMPTY
        if self.current_index == self.total - 1:
            return SessionState.AT_LAST_QUESTION
        return SessionState.IN_PROGRESS

    @property
    def percent(self) -> int:
        return percent_of(self.score, self.total)

    def question_by_id(self, question_id: int) -> Question | None:
        for question in self.order:
            if question.id == question_id:
                return question
        return None

    def answer_for(
        self, question: Question | None = None
    ) -> RecordedAnswer | None:
        target = question or self.current
        if target is None:
            return None
        return self.answers.get(target.id)

    def answered_count(self) -> int:
        return sum(
            1
            for question in self.order
            if grader.is_answered(question, self.answers.get(question.id))
        )

    def current_answered(self) -> bool:
        question = self.current
        if question is None:
            return False
        return grader.is_answered(question, self.answers.get(question.id))

    def record_answer(self, question_id: int, value: object) -> bool:
        """Store ``value`` for ``question_id`` after normalizing it.

        Returns False, leaving answers untouched, when the id is not part of
        this session, the session is complete, or the value is not a usable
        choice index.
        """

        if self.complete:
            return False
        question = self.question_by_id(question_id)
        if question is None:
            return False
        normalized = grader.normalize_answer(question, value)
        if normalized is None:
            return False
        self.answers[question.id] = normalized
        return True

    def can_advance(self) -> bool:
        return (
            self.state is SessionState.IN_PROGRESS and self.current_answered()
        )

    def can_submit(self) -> bool:
        return (
            self.state is SessionState.AT_LAST_QUESTION
            and self.current_answered()
        )

    def advance(self) -> bool:
        if not self.can_advance():
            return False
        self.current_index += 1
        return True

    def submit(self) -> bool:
        if not self.can_submit():
            return False
        self.score = grader.calculate_score(self.order, self.answers)
        self.complete = True
        logger.info(
            "Quiz submitted",
            extra={
                "score": self.score,
                "total": self.total,
                "topics": list(self.topics),
            },
        )
        return True

    def restart(self) -> "QuizSession":
        """Start over with the same bank, topics and length.

        The new session is reselected and reshuffled; this one is left as is.
        """

        return start_session(
            self.bank, self.topics, self.length, rng=self.rng
        )

    def review(self, *, show_explanations: bool = True) -> QuizSummary:
        responses: list[QuestionResponse] = []
        per_topic: dict[str, list[int]] = {}
        for question in self.order:
            recorded = self.answers.get(question.id)
            correct = grader.grade(question, recorded)
            responses.append(
                QuestionResponse(
                    question_id=question.id,
                    question=question.question,
                    topic=question.topic,
                    selected_text=grader.display_answer(question, recorded),
                    answer_text=grader.correct_answer_text(question),
                    is_correct=correct,
                    explanation=(
                        question.explanation or None
                        if show_explanations
                        else None
                    ),
                )
            )
            counts = per_topic.setdefault(question.topic, [0, 0])
            counts[0] += 1
            counts[1] += int(correct)

        correct_total = sum(1 for response in responses if response.is_correct)
        return QuizSummary(
            total_questions=self.total,
            correct_answers=correct_total,
            answered_questions=self.answered_count(),
            percent=percent_of(correct_total, self.total),
            responses=tuple(responses),
            per_topic={
                topic: TopicSummary(topic=topic, asked=asked, correct=right)
                for topic, (asked, right) in per_topic.items()
            },
        )


def start_session(
    bank: Sequence[Question],
    topics: Sequence[str],
    length: int,
    *,
    rng: RandomSource | None = None,
) -> QuizSession:
    """Select questions and return a fresh session at the first question.

    Always succeeds: an empty bank yields a session in the ``EMPTY`` state
    that can never be submitted.
    """

    bank_tuple = tuple(bank)
    topic_tuple = tuple(topics)
    order = select_questions(bank_tuple, topic_tuple, length, rng=rng)
    logger.info(
        "Quiz session started",
        extra={
            "requested_length": length,
            "selected": len(order),
            "topics": list(topic_tuple),
        },
    )
    return QuizSession(
        bank=bank_tuple,
        topics=topic_tuple,
        length=length,
        order=order,
        rng=rng,
    )
