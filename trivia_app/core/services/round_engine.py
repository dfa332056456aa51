"""Service driving one timed round of multiple-choice questions."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Sequence

from trivia_app.constants.round_constants import (
    PERFECT_BONUS,
    QUESTIONS_PER_ROUND,
    TICK_INTERVAL_SECONDS,
    TIME_LIMIT_SECONDS,
)
from trivia_app.core.models import AnswerOutcome, Question, QuestionView, RoundPhase, RoundResult
from trivia_app.core.scheduler import ScheduledTask, ThreadingTickScheduler, TickScheduler
from trivia_app.core.scoring import accuracy_percent, score_correct_answer, star_rating

logger = logging.getLogger(__name__)

TickHandler = Callable[[int], None]
TimeUpHandler = Callable[[], None]


class RoundEngine:
    """State machine for a single round: Idle -> Playing <-> Answered -> RoundComplete.

    Every public method and every timer tick runs under ``lock``. Pass the lock
    of an owning facade to make the facade and the engine one critical section.
    Misuse (answering twice, advancing while a question is open) returns
    ``None`` and leaves the state untouched.
    """

    def __init__(self, scheduler: TickScheduler | None = None, lock: RLock | None = None) -> None:
        self._scheduler: TickScheduler = scheduler or ThreadingTickScheduler()
        self._lock = lock or RLock()

        self._phase: RoundPhase = RoundPhase.IDLE
        self._questions: tuple[Question, ...] = ()
        self._question_index: int = 0
        self._score: int = 0
        self._streak: int = 0
        self._best_streak: int = 0
        self._correct_count: int = 0
        self._result: RoundResult | None = None

        # Timer state
        self._timer_enabled: bool = True
        self._seconds_remaining: int = TIME_LIMIT_SECONDS
        self._timer_task: ScheduledTask | None = None
        self._timer_generation: int = 0

        self._tick_handler: TickHandler | None = None
        self._time_up_handler: TimeUpHandler | None = None

    # --- Callback registration ---

    def on_tick(self, handler: TickHandler | None) -> None:
        """Receive the remaining seconds once per tick, starting with the full limit."""
        with self._lock:
            self._tick_handler = handler

    def on_time_up(self, handler: TimeUpHandler | None) -> None:
        with self._lock:
            self._time_up_handler = handler

    # --- Round lifecycle ---

    def start_round(self, questions: Sequence[Question], no_timer: bool = False) -> QuestionView | None:
        """Start a new round with the first ``QUESTIONS_PER_ROUND`` questions.

        Any round in progress on this engine is abandoned.
        """
        with self._lock:
            self._stop_timer()
            self._questions = tuple(questions[:QUESTIONS_PER_ROUND])
            self._question_index = 0
            self._score = 0
            self._streak = 0
            self._best_streak = 0
            self._correct_count = 0
            self._result = None
            self._timer_enabled = not no_timer
            self._seconds_remaining = TIME_LIMIT_SECONDS

            if not self._questions:
                logger.info("Round started without questions; completing immediately")
                self._complete_round()
                return None

            logger.info(
                "Round started: %d questions, timer %s",
                len(self._questions),
                "on" if self._timer_enabled else "off",
            )
            self._phase = RoundPhase.PLAYING
            if self._timer_enabled:
                self._start_timer()
            return self._project_current()

    def get_current_question(self) -> QuestionView | None:
        with self._lock:
            if self._phase in (RoundPhase.IDLE, RoundPhase.ROUND_COMPLETE):
                return None
            return self._project_current()

    def submit_answer(self, choice_index: int) -> AnswerOutcome | None:
        """Resolve the current question. Returns ``None`` unless a question is open."""
        with self._lock:
            if self._phase is not RoundPhase.PLAYING:
                return None

            self._stop_timer()
            self._phase = RoundPhase.ANSWERED

            question = self._questions[self._question_index]
            correct = choice_index == question.correct_index

            points_earned = 0
            bonus = 0
            multiplier = 1.0
            if correct:
                self._streak += 1
                self._correct_count += 1
                self._best_streak = max(self._best_streak, self._streak)
                breakdown = score_correct_answer(self._seconds_remaining, self._streak)
                points_earned = breakdown.points
                bonus = breakdown.speed_bonus
                multiplier = breakdown.streak_multiplier
                self._score += points_earned
            else:
                self._streak = 0

            logger.debug(
                "Question %d answered: correct=%s points=%d streak=%d",
                self._question_index + 1,
                correct,
                points_earned,
                self._streak,
            )
            return AnswerOutcome(
                correct=correct,
                correct_index=question.correct_index,
                explanation=question.explanation or "",
                deep_dive=question.deep_dive,
                points_earned=points_earned,
                streak=self._streak,
                speed_bonus=bonus,
                streak_multiplier=multiplier,
            )

    def next_question(self) -> QuestionView | None:
        """Advance past an answered question.

        Returns the next question, or ``None`` once the round is complete (the
        caller then reads ``get_round_result()``) or when nothing was answered.
        """
        with self._lock:
            if self._phase is not RoundPhase.ANSWERED:
                return None

            self._question_index += 1
            if self._question_index >= len(self._questions):
                self._complete_round()
                return None

            self._phase = RoundPhase.PLAYING
            self._seconds_remaining = TIME_LIMIT_SECONDS
            if self._timer_enabled:
                self._start_timer()
            return self._project_current()

    def get_round_result(self) -> RoundResult | None:
        with self._lock:
            return self._result

    def destroy(self) -> None:
        """Stop the timer and drop callbacks. Safe to call repeatedly."""
        with self._lock:
            self._stop_timer()
            self._tick_handler = None
            self._time_up_handler = None

    # --- Read-only state ---

    @property
    def phase(self) -> RoundPhase:
        return self._phase

    @property
    def score(self) -> int:
        return self._score

    @property
    def streak(self) -> int:
        return self._streak

    @property
    def best_streak(self) -> int:
        return self._best_streak

    @property
    def correct_count(self) -> int:
        return self._correct_count

    @property
    def seconds_remaining(self) -> int:
        return self._seconds_remaining

    @property
    def timer_enabled(self) -> bool:
        return self._timer_enabled

    @property
    def question_index(self) -> int:
        return self._question_index

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    # --- Internals ---

    def _project_current(self) -> QuestionView:
        question = self._questions[self._question_index]
        return QuestionView(
            prompt=question.prompt,
            choices=question.choices,
            question_number=self._question_index + 1,
            total_questions=len(self._questions),
        )

    def _complete_round(self) -> None:
        total = len(self._questions)
        is_perfect = total > 0 and self._correct_count == total
        if is_perfect:
            self._score += PERFECT_BONUS
        accuracy = accuracy_percent(self._correct_count, total)
        self._result = RoundResult(
            score=self._score,
            correct=self._correct_count,
            total=total,
            accuracy=accuracy,
            best_streak=self._best_streak,
            stars=star_rating(accuracy),
            is_perfect=is_perfect,
        )
        self._phase = RoundPhase.ROUND_COMPLETE
        logger.info(
            "Round complete: score=%d correct=%d/%d perfect=%s",
            self._score,
            self._correct_count,
            total,
            is_perfect,
        )

    def _start_timer(self) -> None:
        self._stop_timer()
        self._seconds_remaining = TIME_LIMIT_SECONDS
        generation = self._timer_generation

        self._emit_tick()
        # A tick handler may have answered or torn down the round already.
        if generation != self._timer_generation or self._phase is not RoundPhase.PLAYING:
            return
        self._timer_task = self._scheduler.schedule_repeating(
            TICK_INTERVAL_SECONDS,
            lambda: self._handle_tick(generation),
        )

    def _stop_timer(self) -> None:
        # Bumping the generation invalidates ticks already queued by the old task.
        self._timer_generation += 1
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    def _handle_tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation or self._phase is not RoundPhase.PLAYING:
                return

            self._seconds_remaining -= 1
            self._emit_tick()
            if generation != self._timer_generation:
                return

            if self._seconds_remaining <= 0:
                self._stop_timer()
                self._streak = 0
                self._phase = RoundPhase.ANSWERED
                logger.debug("Question %d timed out", self._question_index + 1)
                self._emit_time_up()

    # Handler errors are logged and dropped so the countdown keeps running.

    def _emit_tick(self) -> None:
        if self._tick_handler is None:
            return
        try:
            self._tick_handler(self._seconds_remaining)
        except Exception:
            logger.exception("Tick handler failed at %d seconds", self._seconds_remaining)

    def _emit_time_up(self) -> None:
        if self._time_up_handler is None:
            return
        try:
            self._time_up_handler()
        except Exception:
            logger.exception("Time-up handler failed for question %d", self._question_index + 1)
