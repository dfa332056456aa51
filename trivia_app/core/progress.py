"""Player progression: lifetime score, levels, per-category stats and play streak.

Like the question history, progress is a plain value owned by the caller.
Every update returns a new ``PlayerProgress`` and storing it is left to
whoever holds it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
import logging
import math
from typing import Any, Mapping

from trivia_app.constants.progress_constants import (
    LEVEL_MILESTONES,
    LEVEL_TITLES,
    MAX_LEVEL,
    UNREACHABLE_LEVEL_SCORE,
)
from trivia_app.core.scoring import accuracy_percent, star_rating

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CategoryStats:
    high_score: int = 0
    total_correct: int = 0
    total_attempted: int = 0
    times_played: int = 0

    @property
    def accuracy(self) -> int:
        return accuracy_percent(self.total_correct, self.total_attempted)

    @property
    def stars(self) -> int:
        """0 for a category never played, otherwise the usual star rating."""
        if self.times_played == 0:
            return 0
        return star_rating(self.accuracy)


@dataclass(frozen=True, slots=True)
class PlayerProgress:
    lifetime_score: int = 0
    play_streak: int = 0
    last_play_date: date | None = None
    categories: Mapping[str, CategoryStats] = field(default_factory=dict)
    daily_last_date: date | None = None
    daily_last_score: int | None = None


@dataclass(frozen=True, slots=True)
class LevelInfo:
    level: int
    title: str
    current_score: int
    next_level_score: int
    progress: float


@dataclass(frozen=True, slots=True)
class RoundProgress:
    """What finishing a round changed for the player."""

    is_high_score: bool
    level_before: int
    level_after: int
    level_up: bool


@dataclass(frozen=True, slots=True)
class PlayerStats:
    lifetime_score: int
    level_info: LevelInfo
    play_streak: int
    total_questions_answered: int
    overall_accuracy: int
    categories_played: int


# --- Levels ---


def calc_level(lifetime_score: int) -> int:
    """Level for a lifetime score, interpolating linearly between milestones."""
    last_score, last_level = LEVEL_MILESTONES[-1]
    if lifetime_score >= last_score:
        return last_level

    for position in range(len(LEVEL_MILESTONES) - 2, -1, -1):
        milestone_score, milestone_level = LEVEL_MILESTONES[position]
        if lifetime_score >= milestone_score:
            next_score, next_level = LEVEL_MILESTONES[position + 1]
            fraction = (lifetime_score - milestone_score) / (next_score - milestone_score)
            return math.floor(milestone_level + fraction * (next_level - milestone_level))
    return 1


def score_for_level(level: int) -> int:
    """Lifetime score needed to reach ``level``."""
    if level <= 1:
        return 0
    if level >= MAX_LEVEL:
        return LEVEL_MILESTONES[-1][0]

    for (milestone_score, milestone_level), (next_score, next_level) in zip(
        LEVEL_MILESTONES, LEVEL_MILESTONES[1:]
    ):
        if milestone_level <= level < next_level:
            ratio = (level - milestone_level) / (next_level - milestone_level)
            return math.floor(milestone_score + ratio * (next_score - milestone_score))
    return UNREACHABLE_LEVEL_SCORE


def level_title(level: int) -> str:
    for minimum_level, title in reversed(LEVEL_TITLES):
        if level >= minimum_level:
            return title
    return LEVEL_TITLES[0][1]


def level_info(lifetime_score: int) -> LevelInfo:
    level = calc_level(lifetime_score)
    next_level = min(level + 1, MAX_LEVEL)
    current_level_score = score_for_level(level)
    next_level_score = score_for_level(next_level)

    if level >= MAX_LEVEL:
        progress = 1.0
    else:
        span = next_level_score - current_level_score
        progress = (lifetime_score - current_level_score) / span if span > 0 else 1.0
        progress = min(max(progress, 0.0), 1.0)

    return LevelInfo(
        level=level,
        title=level_title(level),
        current_score=lifetime_score,
        next_level_score=next_level_score,
        progress=progress,
    )


# --- Updates ---


def next_play_streak(streak: int, last_play_date: date | None, today: date) -> int:
    """Consecutive play days after playing on ``today``."""
    if last_play_date is None:
        return 1
    if last_play_date == today - timedelta(days=1):
        return streak + 1
    if last_play_date == today:
        return streak
    return 1


def save_round_result(
    progress: PlayerProgress,
    category_id: str,
    score: int,
    correct: int,
    total: int,
    today: date | None = None,
) -> tuple[PlayerProgress, RoundProgress]:
    """Fold a finished round into ``progress`` and report high score and level-up."""
    today = today or date.today()
    level_before = calc_level(progress.lifetime_score)

    stats = progress.categories.get(category_id, CategoryStats())
    is_high_score = score > stats.high_score
    categories = dict(progress.categories)
    categories[category_id] = CategoryStats(
        high_score=score if is_high_score else stats.high_score,
        total_correct=stats.total_correct + correct,
        total_attempted=stats.total_attempted + total,
        times_played=stats.times_played + 1,
    )

    updated = replace(
        progress,
        lifetime_score=progress.lifetime_score + score,
        play_streak=next_play_streak(progress.play_streak, progress.last_play_date, today),
        last_play_date=today,
        categories=categories,
    )
    level_after = calc_level(updated.lifetime_score)
    if level_after > level_before:
        logger.info("Level up: %d -> %d", level_before, level_after)
    return updated, RoundProgress(
        is_high_score=is_high_score,
        level_before=level_before,
        level_after=level_after,
        level_up=level_after > level_before,
    )


def save_daily_result(progress: PlayerProgress, score: int, today: date | None = None) -> PlayerProgress:
    return replace(progress, daily_last_date=today or date.today(), daily_last_score=score)


# --- Queries ---


def daily_result(progress: PlayerProgress, today: date | None = None) -> int | None:
    """Today's daily challenge score, or ``None`` when it has not been played."""
    if progress.daily_last_date == (today or date.today()):
        return progress.daily_last_score
    return None


def category_stats(progress: PlayerProgress, category_id: str) -> CategoryStats:
    return progress.categories.get(category_id, CategoryStats())


def player_stats(progress: PlayerProgress) -> PlayerStats:
    answered = sum(stats.total_attempted for stats in progress.categories.values())
    correct = sum(stats.total_correct for stats in progress.categories.values())
    return PlayerStats(
        lifetime_score=progress.lifetime_score,
        level_info=level_info(progress.lifetime_score),
        play_streak=progress.play_streak,
        total_questions_answered=answered,
        overall_accuracy=accuracy_percent(correct, answered),
        categories_played=len(progress.categories),
    )


# --- External storage ---


def progress_to_json(progress: PlayerProgress) -> dict[str, Any]:
    return {
        "lifetimeScore": progress.lifetime_score,
        "playStreak": progress.play_streak,
        "lastPlayDate": _date_to_json(progress.last_play_date),
        "categories": {
            category_id: {
                "highScore": stats.high_score,
                "totalCorrect": stats.total_correct,
                "totalAttempted": stats.total_attempted,
                "timesPlayed": stats.times_played,
            }
            for category_id, stats in progress.categories.items()
        },
        "dailyChallenge": {
            "lastDate": _date_to_json(progress.daily_last_date),
            "lastScore": progress.daily_last_score,
        },
    }


def parse_progress(raw: Mapping[str, Any] | None) -> PlayerProgress:
    """Read stored progress; unreadable fields fall back to their defaults."""
    if not isinstance(raw, Mapping):
        return PlayerProgress()

    categories: dict[str, CategoryStats] = {}
    raw_categories = raw.get("categories")
    if isinstance(raw_categories, Mapping):
        for category_id, entry in raw_categories.items():
            stats = _parse_category_stats(entry)
            if stats is None:
                logger.warning("Dropping unreadable stats for category '%s'", category_id)
                continue
            categories[str(category_id)] = stats

    daily = raw.get("dailyChallenge")
    if not isinstance(daily, Mapping):
        daily = {}
    daily_score = daily.get("lastScore")

    return PlayerProgress(
        lifetime_score=_count_or_zero(raw.get("lifetimeScore")),
        play_streak=_count_or_zero(raw.get("playStreak")),
        last_play_date=_parse_date(raw.get("lastPlayDate")),
        categories=categories,
        daily_last_date=_parse_date(daily.get("lastDate")),
        daily_last_score=daily_score if _is_count(daily_score) else None,
    )


def _parse_category_stats(entry: Any) -> CategoryStats | None:
    if not isinstance(entry, Mapping):
        return None
    values = [entry.get(key) for key in ("highScore", "totalCorrect", "totalAttempted", "timesPlayed")]
    if not all(_is_count(value) for value in values):
        return None
    return CategoryStats(*values)


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _date_to_json(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _count_or_zero(value: Any) -> int:
    return value if _is_count(value) else 0


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
