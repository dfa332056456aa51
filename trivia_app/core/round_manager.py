"""Business logic tying the question bank, history and round engine together."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
import random
from threading import RLock
from typing import Any, Callable, Mapping

from trivia_app.constants.progress_constants import REVIEW_STATS_CATEGORY
from trivia_app.constants.round_constants import DAILY_QUESTION_COUNT, REVIEW_QUESTION_COUNT
from trivia_app.core.models import (
    AnswerOutcome,
    CategoryMeta,
    CategoryWeakness,
    Question,
    QuestionRecord,
    QuestionView,
    RoundPhase,
    RoundResult,
)
from trivia_app.core.progress import (
    CategoryStats,
    LevelInfo,
    PlayerProgress,
    PlayerStats,
    RoundProgress,
    category_stats,
    daily_result,
    level_info,
    parse_progress,
    player_stats,
    save_daily_result,
    save_round_result,
)
from trivia_app.core.question_bank import QuestionBank
from trivia_app.core.question_history import parse_history, record_question_result
from trivia_app.core.scheduler import TickScheduler
from trivia_app.core.services.daily_shuffle import daily_seed, select_daily
from trivia_app.core.services.review_selector import analyze_weaknesses, select_review_candidates
from trivia_app.core.services.round_engine import RoundEngine, TickHandler, TimeUpHandler

logger = logging.getLogger(__name__)

MODE_CATEGORY = "category"
MODE_DAILY = "daily"
MODE_REVIEW = "review"


@dataclass(frozen=True, slots=True)
class QuestionOrigin:
    """Where a round question lives in the bank, for history bookkeeping."""

    category_id: str
    question_index: int


class RoundManager:
    """Facade for one player: picks questions, runs rounds and keeps history.

    All state, including the engine's, is guarded by one re-entrant lock so
    timer ticks arriving on a scheduler thread never interleave with answers.
    """

    def __init__(
        self,
        bank: QuestionBank,
        scheduler: TickScheduler | None = None,
        today_provider: Callable[[], date] = date.today,
        review_rng: random.Random | None = None,
        progress: PlayerProgress | None = None,
    ) -> None:
        self._lock = RLock()
        self._bank = bank
        self._scheduler = scheduler
        self._today_provider = today_provider
        self._review_rng = review_rng

        self._engine = RoundEngine(scheduler, lock=self._lock)
        self._history: dict[str, QuestionRecord] = {}
        self._progress = progress or PlayerProgress()
        self._last_round_progress: RoundProgress | None = None
        self._origins: list[QuestionOrigin | None] = []
        self._mode: str | None = None
        self._daily_seed: int | None = None
        self._round_day: date | None = None
        self._stats_category: str | None = None
        self._completed_daily_seeds: set[int] = set()

        self._tick_handler: TickHandler | None = None
        self._time_up_handler: TimeUpHandler | None = None

    # --- Callbacks ---

    def on_tick(self, handler: TickHandler | None) -> None:
        with self._lock:
            self._tick_handler = handler
            self._engine.on_tick(handler)

    def on_time_up(self, handler: TimeUpHandler | None) -> None:
        with self._lock:
            self._time_up_handler = handler

    # --- Starting rounds ---

    def get_categories(self) -> list[CategoryMeta]:
        with self._lock:
            return self._bank.get_categories()

    def start_category_round(self, category_id: str, no_timer: bool = False) -> QuestionView | None:
        with self._lock:
            if not self._bank.has_category(category_id):
                raise KeyError(f"Unknown category '{category_id}'.")
            indexed = self._bank.get_indexed_questions(category_id)
            questions = [question for _, question in indexed]
            origins = [QuestionOrigin(category_id, index) for index, _ in indexed]
            return self._start(MODE_CATEGORY, questions, origins, no_timer, stats_category=category_id)

    def start_daily_round(self, today: date | None = None, no_timer: bool = False) -> QuestionView | None:
        """Start today's challenge; ``None`` if it was already completed."""
        with self._lock:
            day = today or self._today_provider()
            seed = daily_seed(day)
            if seed in self._completed_daily_seeds:
                logger.info("Daily challenge %d already played", seed)
                return None
            picked = select_daily(self._bank.get_all_raw_questions(), DAILY_QUESTION_COUNT, day)
            questions = [self._bank.convert(raw) for _, _, raw in picked]
            origins = [QuestionOrigin(category_id, index) for category_id, index, _ in picked]
            return self._start(MODE_DAILY, questions, origins, no_timer, day=day, daily_seed=seed)

    def start_review_round(self, today: date | None = None) -> QuestionView | None:
        """Start an untimed review round; ``None`` when nothing is left to review."""
        with self._lock:
            day = today or self._today_provider()
            candidates = select_review_candidates(
                self._bank.get_all_categories_with_questions(),
                self._history,
                REVIEW_QUESTION_COUNT,
                day,
                self._review_rng,
            )
            if not candidates:
                return None
            questions = [self._bank.convert(candidate.question) for candidate in candidates]
            origins = [QuestionOrigin(c.category_id, c.question_index) for c in candidates]
            return self._start(
                MODE_REVIEW, questions, origins, no_timer=True, day=day, stats_category=REVIEW_STATS_CATEGORY
            )

    def start_custom_round(self, questions: list[Question], no_timer: bool = False) -> QuestionView | None:
        """Play caller-supplied questions; neither history nor progress is recorded."""
        with self._lock:
            return self._start(MODE_CATEGORY, questions, [None] * len(questions), no_timer)

    # --- Round delegation ---

    def get_current_question(self) -> QuestionView | None:
        with self._lock:
            return self._engine.get_current_question()

    def submit_answer(self, choice_index: int) -> AnswerOutcome | None:
        with self._lock:
            index = self._engine.question_index
            outcome = self._engine.submit_answer(choice_index)
            if outcome is not None:
                self._record(index, outcome.correct)
            return outcome

    def next_question(self) -> QuestionView | None:
        with self._lock:
            view = self._engine.next_question()
            if view is None and self._engine.phase is RoundPhase.ROUND_COMPLETE:
                self._on_round_complete()
            return view

    def get_round_result(self) -> RoundResult | None:
        with self._lock:
            return self._engine.get_round_result()

    def get_phase(self) -> RoundPhase:
        with self._lock:
            return self._engine.phase

    def get_mode(self) -> str | None:
        with self._lock:
            return self._mode

    def get_score(self) -> int:
        with self._lock:
            return self._engine.score

    def get_streak(self) -> int:
        with self._lock:
            return self._engine.streak

    def get_seconds_remaining(self) -> int:
        with self._lock:
            return self._engine.seconds_remaining

    def is_timer_enabled(self) -> bool:
        with self._lock:
            return self._engine.timer_enabled

    def has_played_daily(self, today: date | None = None) -> bool:
        with self._lock:
            return daily_seed(today or self._today_provider()) in self._completed_daily_seeds

    # --- History ---

    def load_history(self, raw_history: Mapping[str, Any] | None) -> None:
        with self._lock:
            self._history = parse_history(raw_history)

    def get_history(self) -> dict[str, QuestionRecord]:
        with self._lock:
            return dict(self._history)

    def get_weaknesses(self) -> list[CategoryWeakness]:
        with self._lock:
            return analyze_weaknesses(self._bank.get_categories(), self._history)

    # --- Progress ---

    def load_progress(self, raw_progress: Mapping[str, Any] | None) -> None:
        with self._lock:
            self._progress = parse_progress(raw_progress)

    def get_progress(self) -> PlayerProgress:
        with self._lock:
            return self._progress

    def get_last_round_progress(self) -> RoundProgress | None:
        """High score and level-up of the last finished category or review round."""
        with self._lock:
            return self._last_round_progress

    def get_level_info(self) -> LevelInfo:
        with self._lock:
            return level_info(self._progress.lifetime_score)

    def get_category_stats(self, category_id: str) -> CategoryStats:
        with self._lock:
            return category_stats(self._progress, category_id)

    def get_player_stats(self) -> PlayerStats:
        with self._lock:
            return player_stats(self._progress)

    def get_daily_result(self, today: date | None = None) -> int | None:
        with self._lock:
            return daily_result(self._progress, today or self._today_provider())

    def destroy(self) -> None:
        with self._lock:
            self._engine.destroy()

    # --- Internals ---

    def _start(
        self,
        mode: str,
        questions: list[Question],
        origins: list[QuestionOrigin | None],
        no_timer: bool,
        day: date | None = None,
        daily_seed: int | None = None,
        stats_category: str | None = None,
    ) -> QuestionView | None:
        # A fresh engine per round, like a fresh screen per round.
        self._engine.destroy()
        self._engine = RoundEngine(self._scheduler, lock=self._lock)
        self._engine.on_tick(self._tick_handler)
        self._engine.on_time_up(self._handle_time_up)

        self._mode = mode
        self._round_day = day or self._today_provider()
        self._daily_seed = daily_seed
        self._stats_category = stats_category
        self._last_round_progress = None
        self._origins = origins[: len(questions)]
        logger.info("Starting %s round with %d questions", mode, len(questions))
        view = self._engine.start_round(questions, no_timer=no_timer)
        if self._engine.phase is RoundPhase.ROUND_COMPLETE:
            self._on_round_complete()
        return view

    def _handle_time_up(self) -> None:
        self._record(self._engine.question_index, False)
        if self._time_up_handler is not None:
            self._time_up_handler()

    def _record(self, index: int, correct: bool) -> None:
        origin = self._origins[index] if 0 <= index < len(self._origins) else None
        if origin is None:
            return
        self._history = record_question_result(
            self._history,
            origin.category_id,
            origin.question_index,
            correct,
            self._round_day or self._today_provider(),
        )

    def _on_round_complete(self) -> None:
        result = self._engine.get_round_result()
        day = self._round_day or self._today_provider()
        if self._mode == MODE_DAILY:
            if self._daily_seed is not None:
                self._completed_daily_seeds.add(self._daily_seed)
            self._progress = save_daily_result(self._progress, result.score, day)
        elif self._stats_category is not None:
            self._progress, self._last_round_progress = save_round_result(
                self._progress,
                self._stats_category,
                result.score,
                result.correct,
                result.total,
                day,
            )
