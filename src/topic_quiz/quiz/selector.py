import logging
import random
from dataclasses import replace
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, TypeVar

from .bank import Question, bank_topics

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Anything that can draw a uniform integer in ``[a, b]``."""

    def randint(self, a: int, b: int) -> int: ...


_default_rng = random.Random()


def shuffle(items: Sequence[T], rng: Optional[RandomSource] = None) -> List[T]:
    """Return a Fisher-Yates permutation of ``items`` as a new list."""
    source = rng or _default_rng
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = source.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def randomize_choices(
    question: Question, rng: Optional[RandomSource] = None
) -> Question:
    """Permute an mcq's choices and re-point ``answer`` at the same text.

    Non-mcq questions are returned unchanged.
    """
    if question.type != "mcq":
        return question
    tagged = shuffle(list(enumerate(question.choices)), rng)
    new_answer = next(
        pos for pos, (orig, _) in enumerate(tagged) if orig == question.answer
    )
    return replace(
        question,
        choices=tuple(text for _, text in tagged),
        answer=new_answer,
    )


def _partition(
    pool: Sequence[Question], topics: Sequence[str], rng: Optional[RandomSource]
) -> Dict[str, List[Question]]:
    groups: Dict[str, List[Question]] = {t: [] for t in topics}
    for q in pool:
        if q.topic in groups:
            groups[q.topic].append(q)
    return {t: shuffle(qs, rng) for t, qs in groups.items() if qs}


def _working_pool(
    bank: Sequence[Question], requested: Sequence[str]
) -> Tuple[List[Question], List[str]]:
    topics = list(dict.fromkeys(requested)) if requested else bank_topics(bank)
    pool = [q for q in bank if q.topic in topics]
    if not pool:
        if requested:
            logger.info(
                "No questions for requested topics; using the whole bank",
                extra={"topics": list(requested)},
            )
        return list(bank), bank_topics(bank)
    return pool, topics


def balanced_selection(
    pool: Sequence[Question],
    topics: Sequence[str],
    length: int,
    rng: Optional[RandomSource] = None,
) -> List[Question]:
    """Pick ``length`` questions spread as evenly as possible over topics.

    - each topic contributes up to ``length // len(topics)`` questions
    - remaining slots go round-robin in topic order, one per turn
    - if every topic runs dry, the rest is drawn from unselected pool items
    """
    if length <= 0 or not pool:
        return []
    groups = _partition(pool, topics, rng)
    active = [t for t in topics if t in groups]
    if not active:
        return shuffle(pool, rng)[:length]

    base = length // len(active)
    selection: List[Question] = []
    for t in active:
        take = min(base, len(groups[t]))
        selection.extend(groups[t][:take])
        groups[t] = groups[t][take:]

    turn = 0
    while len(selection) < length and any(groups[t] for t in active):
        t = active[turn % len(active)]
        if groups[t]:
            selection.append(groups[t].pop(0))
        turn += 1

    if len(selection) < length:
        chosen = {q.id for q in selection}
        remaining = [q for q in pool if q.id not in chosen]
        selection.extend(shuffle(remaining, rng)[: length - len(selection)])

    return shuffle(selection, rng)[:length]


def select_questions(
    bank: Sequence[Question],
    requested_topics: Sequence[str],
    length: int,
    *,
    rng: Optional[RandomSource] = None,
) -> Tuple[Question, ...]:
    """Select a topic-balanced, shuffled quiz order from ``bank``.

    Empty ``requested_topics`` balances across every topic in the bank. When
    none of the requested topics has questions the whole bank is used. Each
    selected mcq gets its choices shuffled independently.
    """
    if length <= 0 or not bank:
        return ()
    pool, topics = _working_pool(bank, requested_topics)
    picked = balanced_selection(pool, topics, length, rng)
    return tuple(randomize_choices(q, rng) for q in picked)
