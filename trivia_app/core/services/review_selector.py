"""Adaptive selection of review questions from the player's answer history.

Each candidate gets a priority weight from its ``QuestionRecord``:

* never answered (or no readable record): 2
* most recent attempt was wrong: 4, regardless of the overall wrong rate
* otherwise, with any past misses: 3 * wrong rate
* otherwise, by days since last seen: <1 -> 0.3, <3 -> 0.5, <7 -> 0.8, else 1.0

Candidates at or below 0.1 are considered mastered and skipped. The rest are
ranked by ``weight * (0.5 + random())`` and the top ``count`` are returned, so
heavier questions are more likely, but never certain, to be picked.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
import random
from typing import Any, Iterable, Mapping, Protocol, Sequence

from trivia_app.constants.round_constants import (
    MASTERED_WEIGHT_CUTOFF,
    RECENCY_WEIGHTS,
    RECENT_MISS_WEIGHT,
    REVIEW_QUESTION_COUNT,
    SETTLED_WEIGHT,
    UNANSWERED_WEIGHT,
    UNSEEN_DAYS,
    WEAK_WRONG_RATE,
    WRONG_RATE_FACTOR,
)
from trivia_app.core.models import CategoryMeta, CategoryQuestions, CategoryWeakness, QuestionRecord, RawQuestion
from trivia_app.core.question_history import history_key, parse_question_record
from trivia_app.core.scoring import accuracy_percent

logger = logging.getLogger(__name__)

_default_rng = random.Random()


class RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass(frozen=True, slots=True)
class ReviewCandidate:
    """A question eligible for review together with its priority weight."""

    question: RawQuestion
    weight: float
    category_id: str
    question_index: int


def days_since(last_seen: date | None, today: date | None = None) -> int:
    if last_seen is None:
        return UNSEEN_DAYS
    return ((today or date.today()) - last_seen).days


def calc_weight(record: QuestionRecord | Mapping[str, Any] | None, today: date | None = None) -> float:
    """Review priority for one question; higher means more likely to be asked."""
    parsed = parse_question_record(record) if record is not None else None
    if parsed is None or parsed.attempts == 0:
        return UNANSWERED_WEIGHT

    # A recent miss outranks a poor long-term record on purpose.
    if not parsed.last_result:
        return RECENT_MISS_WEIGHT

    wrong_rate = parsed.wrong_count / parsed.attempts
    if wrong_rate > 0:
        return WRONG_RATE_FACTOR * wrong_rate

    elapsed = days_since(parsed.last_seen, today)
    for max_days, weight in RECENCY_WEIGHTS:
        if elapsed < max_days:
            return weight
    return SETTLED_WEIGHT


def rank_candidates(
    candidates: Sequence[ReviewCandidate],
    count: int = REVIEW_QUESTION_COUNT,
    rng: RandomSource | None = None,
) -> list[ReviewCandidate]:
    """Order candidates by ``weight * (0.5 + random())`` and keep the top ``count``."""
    source = rng or _default_rng
    scored = [(candidate.weight * (0.5 + source.random()), candidate) for candidate in candidates]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [candidate for _, candidate in scored[:max(0, count)]]


def weighted_select(
    candidates: Sequence[ReviewCandidate],
    count: int = REVIEW_QUESTION_COUNT,
    rng: RandomSource | None = None,
) -> list[RawQuestion]:
    return [candidate.question for candidate in rank_candidates(candidates, count, rng)]


def build_candidates(
    categories: Iterable[CategoryQuestions],
    history: Mapping[str, Any],
    today: date | None = None,
) -> list[ReviewCandidate]:
    """Weight every question in every category, dropping mastered ones."""
    candidates: list[ReviewCandidate] = []
    for category in categories:
        for index, question in enumerate(category.questions):
            record = history.get(history_key(category.meta.id, index))
            weight = calc_weight(record, today)
            if weight <= MASTERED_WEIGHT_CUTOFF:
                continue
            candidates.append(
                ReviewCandidate(
                    question=question,
                    weight=weight,
                    category_id=category.meta.id,
                    question_index=index,
                )
            )
    return candidates


def select_review_questions(
    categories: Iterable[CategoryQuestions],
    history: Mapping[str, Any],
    count: int = REVIEW_QUESTION_COUNT,
    today: date | None = None,
    rng: RandomSource | None = None,
) -> list[RawQuestion]:
    """Choose up to ``count`` raw questions for a review round."""
    return [candidate.question for candidate in select_review_candidates(categories, history, count, today, rng)]


def select_review_candidates(
    categories: Iterable[CategoryQuestions],
    history: Mapping[str, Any],
    count: int = REVIEW_QUESTION_COUNT,
    today: date | None = None,
    rng: RandomSource | None = None,
) -> list[ReviewCandidate]:
    """Same selection as ``select_review_questions``, keeping category positions."""
    candidates = build_candidates(categories, history, today)
    selected = rank_candidates(candidates, count, rng)
    logger.info("Review selection: %d of %d candidates", len(selected), len(candidates))
    return selected


def analyze_weaknesses(
    categories: Iterable[CategoryMeta],
    history: Mapping[str, Any],
) -> list[CategoryWeakness]:
    """Summarise accuracy per category, worst first."""
    analysis: list[CategoryWeakness] = []
    for meta in categories:
        total_correct = 0
        total_wrong = 0
        weak_count = 0
        prefix = f"{meta.id}_"
        for key, raw in history.items():
            # "science_fiction_3" shares the "science_" prefix but is not a "science" key.
            if not key.startswith(prefix) or not key[len(prefix):].isdigit():
                continue
            record = parse_question_record(raw)
            if record is None:
                continue
            total_correct += record.correct_count
            total_wrong += record.wrong_count
            if record.attempts > 0 and record.wrong_count / record.attempts >= WEAK_WRONG_RATE:
                weak_count += 1

        total_answered = total_correct + total_wrong
        analysis.append(
            CategoryWeakness(
                category_id=meta.id,
                name=meta.name,
                emoji=meta.emoji,
                color=meta.color,
                total_answered=total_answered,
                accuracy=accuracy_percent(total_correct, total_answered),
                weak_count=weak_count,
            )
        )

    analysis.sort(key=lambda item: item.accuracy)
    return analysis
