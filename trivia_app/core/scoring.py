"""Pure scoring rules: speed bonus, streak multiplier and round rating."""

from __future__ import annotations

from dataclasses import dataclass
import math

from trivia_app.constants.round_constants import (
    BASE_POINTS,
    MAX_SPEED_BONUS,
    MIN_STARS,
    STAR_THRESHOLDS,
    STREAK_MULTIPLIERS,
    TIME_LIMIT_SECONDS,
)


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Points for one correct answer and how they were made up."""

    points: int
    speed_bonus: int
    streak_multiplier: float


def round_half_up(value: float) -> int:
    """Round .5 upwards instead of to the nearest even integer."""
    return math.floor(value + 0.5)


def streak_multiplier(streak: int) -> float:
    for threshold, multiplier in STREAK_MULTIPLIERS:
        if streak >= threshold:
            return multiplier
    return 1.0


def speed_bonus(seconds_remaining: int, time_limit: int = TIME_LIMIT_SECONDS) -> int:
    if time_limit <= 0:
        return 0
    clamped = max(0, min(seconds_remaining, time_limit))
    return round_half_up(MAX_SPEED_BONUS * clamped / time_limit)


def score_correct_answer(
    seconds_remaining: int,
    streak: int,
    time_limit: int = TIME_LIMIT_SECONDS,
) -> ScoreBreakdown:
    """Score a correct answer.

    ``streak`` must already include this answer, so the third correct answer
    in a row is scored with ``streak=3`` and gets the 1.5x tier.
    """
    bonus = speed_bonus(seconds_remaining, time_limit)
    multiplier = streak_multiplier(streak)
    points = round_half_up((BASE_POINTS + bonus) * multiplier)
    return ScoreBreakdown(points=points, speed_bonus=bonus, streak_multiplier=multiplier)


def accuracy_percent(correct: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * correct / total)


def star_rating(accuracy: int) -> int:
    for threshold, stars in STAR_THRESHOLDS:
        if accuracy >= threshold:
            return stars
    return MIN_STARS
