"""Question bank records, validation and loading.

A bank is an ordered, read-only sequence of :class:`Question` values. Banks
are loaded from a JSON array or JSON Lines file, or from the default bank
packaged with topic-quiz.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Iterable, Literal, Mapping, Sequence, Union, cast

QuestionType = Literal["mcq", "boolean", "fill"]
AnswerValue = Union[int, bool, str]

QUESTION_TYPES: tuple[str, ...] = ("mcq", "boolean", "fill")
QUIZ_LENGTH = 10
DEFAULT_BANK_RESOURCE = "questions.jsonl"


class QuestionBankError(ValueError):
    """Raised when a question record or bank file is invalid."""


@dataclass(frozen=True)
class Question:
    """Immutable question as stored in the bank.

    ``answer`` is a choice index for ``mcq``, a bool for ``boolean`` and the
    expected text for ``fill``. ``choices`` is empty unless type is ``mcq``.
    """

    id: int
    topic: str
    type: QuestionType
    question: str
    explanation: str
    answer: AnswerValue
    choices: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "id": self.id,
            "topic": self.topic,
            "type": self.type,
            "question": self.question,
        }
        if self.type == "mcq":
            data["choices"] = list(self.choices)
        data["answer"] = self.answer
        data["explanation"] = self.explanation
        return data


def parse_question(record: Mapping[str, object]) -> Question:
    """Build a validated :class:`Question` from a raw mapping."""

    if not isinstance(record, Mapping):
        raise QuestionBankError("question must be a mapping")
    qid = record.get("id")
    label = f"question {qid!r}"
    if isinstance(qid, bool) or not isinstance(qid, int):
        raise QuestionBankError(f"{label}: id must be an integer")
    topic = record.get("topic")
    if not isinstance(topic, str) or not topic.strip():
        raise QuestionBankError(f"{label}: topic must be a non-empty string")
    qtype = record.get("type")
    if qtype not in QUESTION_TYPES:
        expected = ", ".join(QUESTION_TYPES)
        raise QuestionBankError(f"{label}: type must be one of {expected}")
    text = record.get("question")
    if not isinstance(text, str) or not text.strip():
        raise QuestionBankError(f"{label}: question text is required")
    explanation = record.get("explanation", "")
    if explanation is None:
        explanation = ""
    if not isinstance(explanation, str):
        raise QuestionBankError(f"{label}: explanation must be a string")

    answer = record.get("answer")
    choices: tuple[str, ...] = ()
    if qtype == "mcq":
        choices = _parse_choices(record.get("choices"), label)
        if isinstance(answer, bool) or not isinstance(answer, int):
            raise QuestionBankError(f"{label}: mcq answer must be an index")
        if not 0 <= answer < len(choices):
            raise QuestionBankError(
                f"{label}: answer index {answer} is outside the choices"
            )
    elif qtype == "boolean":
        if not isinstance(answer, bool):
            raise QuestionBankError(f"{label}: boolean answer must be true/false")
    else:
        if not isinstance(answer, str) or not answer.strip():
            raise QuestionBankError(f"{label}: fill answer must be a string")

    return Question(
        id=qid,
        topic=topic.strip(),
        type=cast(QuestionType, qtype),
        question=text.strip(),
        explanation=explanation.strip(),
        answer=cast(AnswerValue, answer),
        choices=choices,
    )


def _parse_choices(raw: object, label: str) -> tuple[str, ...]:
    if not isinstance(raw, (list, tuple)):
        raise QuestionBankError(f"{label}: mcq choices must be a list")
    choices = tuple(str(item) for item in raw)
    if len(choices) < 2:
        raise QuestionBankError(f"{label}: mcq needs at least two choices")
    if not all(choice.strip() for choice in choices):
        raise QuestionBankError(f"{label}: choice text must be non-empty")
    return choices


def build_bank(records: Iterable[Mapping[str, object]]) -> tuple[Question, ...]:
    """Validate ``records`` and reject duplicate ids."""

    bank: list[Question] = []
    seen: set[int] = set()
    for record in records:
        question = parse_question(record)
        if question.id in seen:
            raise QuestionBankError(f"duplicate question id {question.id}")
        seen.add(question.id)
        bank.append(question)
    return tuple(bank)


def load_bank(path: Path) -> tuple[Question, ...]:
    """Load a bank from ``.json`` (array) or ``.jsonl`` (one record per line)."""

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise QuestionBankError(f"Unable to read question bank {path}") from exc
    if path.suffix.lower() == ".jsonl":
        records = _parse_jsonl(text, path)
    else:
        try:
            records = json.loads(text)
        except json.JSONDecodeError as exc:
            raise QuestionBankError(
                f"Invalid JSON in question bank {path}: {exc}"
            ) from exc
        if not isinstance(records, list):
            raise QuestionBankError(
                f"Question bank {path} must contain a JSON array"
            )
    return build_bank(records)


def _parse_jsonl(text: str, path: Path) -> list[dict]:
    records: list[dict] = []
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as exc:
            raise QuestionBankError(
                f"Invalid JSON on line {number} of {path}: {exc}"
            ) from exc
    return records


def default_bank() -> tuple[Question, ...]:
    resource = resources.files("topic_quiz.quiz").joinpath(
        DEFAULT_BANK_RESOURCE
    )
    text = resource.read_text(encoding="utf-8")
    return build_bank(_parse_jsonl(text, Path(DEFAULT_BANK_RESOURCE)))


def bank_topics(bank: Sequence[Question]) -> list[str]:
    """Distinct topics in first-appearance order."""

    topics: list[str] = []
    for question in bank:
        if question.topic not in topics:
            topics.append(question.topic)
    return topics


def topic_counts(bank: Sequence[Question]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for question in bank:
        counts[question.topic] = counts.get(question.topic, 0) + 1
    return counts
