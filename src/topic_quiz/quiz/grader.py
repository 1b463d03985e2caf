"""Answer normalization and grading for the three question types.

Recorded answers are plain values: a choice index for ``mcq`` and
``boolean`` questions, and text for ``fill`` questions. Boolean questions
are answered by index because the console presents them as a two-item
choice list; :data:`BOOLEAN_INDEX_MAP` is the single place that mapping
lives.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .bank import Question

BOOLEAN_CHOICES: tuple[str, ...] = ("True", "False")
BOOLEAN_INDEX_MAP: Mapping[int, bool] = {0: True, 1: False}

RecordedAnswer = int | str


def boolean_from_index(value: object) -> bool | None:
    """Map a boolean-question choice index to the truth value it shows."""

    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return BOOLEAN_INDEX_MAP.get(value)


def choices_for(question: Question) -> tuple[str, ...]:
    """Choice labels the presentation layer offers for ``question``."""

    if question.type == "boolean":
        return BOOLEAN_CHOICES
    return question.choices


def normalize_answer(
    question: Question, value: object
) -> RecordedAnswer | None:
    """Coerce a raw UI value into the recorded form, or ``None`` if unusable.

    Fill answers are trimmed here, at recording time; :func:`grade` never
    trims.
    """

    if question.type == "fill":
        if value is None:
            return None
        return str(value).strip()
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int):
        return None
    if not 0 <= value < len(choices_for(question)):
        return None
    return value


def is_answered(question: Question, value: object) -> bool:
    if value is None:
        return False
    if question.type == "fill":
        return isinstance(value, str) and bool(value.strip())
    return isinstance(value, int) and not isinstance(value, bool)


def grade(question: Question, recorded: object) -> bool:
    if recorded is None:
        return False
    if question.type == "mcq":
        return (
            isinstance(recorded, int)
            and not isinstance(recorded, bool)
            and recorded == question.answer
        )
    if question.type == "boolean":
        # Index 0 reads as True; any other index reads as False.
        if isinstance(recorded, bool) or not isinstance(recorded, int):
            return False
        return (recorded == 0) == question.answer
    if question.type == "fill":
        return isinstance(recorded, str) and (
            recorded.lower() == str(question.answer).lower()
        )
    return False


def calculate_score(
    order: Sequence[Question], answers: Mapping[int, object]
) -> int:
    return sum(1 for q in order if grade(q, answers.get(q.id)))


def display_answer(question: Question, recorded: object) -> str | None:
    """Human readable form of a recorded answer, ``None`` when unanswered."""

    if not is_answered(question, recorded):
        return None
    if question.type == "fill":
        return str(recorded)
    labels = choices_for(question)
    index = int(recorded)  # type: ignore[arg-type]
    if 0 <= index < len(labels):
        return labels[index]
    return None


def correct_answer_text(question: Question) -> str:
    if question.type == "mcq":
        return question.choices[int(question.answer)]
    if question.type == "boolean":
        return BOOLEAN_CHOICES[0] if question.answer else BOOLEAN_CHOICES[1]
    return str(question.answer)
