"""Domain models for the trivia round engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class RoundPhase(str, Enum):
    """Lifecycle of a single round."""

    IDLE = "idle"
    PLAYING = "playing"
    ANSWERED = "answered"
    ROUND_COMPLETE = "roundComplete"


@dataclass(frozen=True, slots=True)
class Question:
    """Multiple-choice question as consumed by the round engine."""

    prompt: str
    choices: tuple[str, ...]
    correct_index: int
    explanation: str | None = None
    deep_dive: str | None = None

    def __post_init__(self) -> None:
        # Accept any sequence but freeze it so the round cannot alter choice order.
        object.__setattr__(self, "choices", tuple(self.choices))
        if len(self.choices) < 2:
            raise ValueError("A question needs at least two choices.")
        if isinstance(self.correct_index, bool) or not isinstance(self.correct_index, int):
            raise ValueError("Correct index must be an integer.")
        if not 0 <= self.correct_index < len(self.choices):
            raise ValueError(
                f"Correct index {self.correct_index} out of range for {len(self.choices)} choices."
            )


@dataclass(frozen=True, slots=True)
class QuestionRecord:
    """Aggregated answer history for one question (read-only input)."""

    correct_count: int = 0
    wrong_count: int = 0
    last_seen: date | None = None
    last_result: bool | None = None  # Was the most recent attempt correct?

    def __post_init__(self) -> None:
        if self.correct_count < 0 or self.wrong_count < 0:
            raise ValueError("Answer counts must not be negative.")

    @property
    def attempts(self) -> int:
        return self.correct_count + self.wrong_count


@dataclass(frozen=True, slots=True)
class QuestionView:
    """What the player may see of the current question."""

    prompt: str
    choices: tuple[str, ...]
    question_number: int
    total_questions: int


@dataclass(frozen=True, slots=True)
class AnswerOutcome:
    """Result of a submitted answer, including the score breakdown."""

    correct: bool
    correct_index: int
    explanation: str
    deep_dive: str | None
    points_earned: int
    streak: int
    speed_bonus: int
    streak_multiplier: float


@dataclass(frozen=True, slots=True)
class RoundResult:
    """Summary handed back to the caller once a round is complete."""

    score: int
    correct: int
    total: int
    accuracy: int
    best_streak: int
    stars: int
    is_perfect: bool


@dataclass(frozen=True, slots=True)
class RawQuestion:
    """Question as stored in a question pack, before choice shuffling."""

    text: str
    choices: tuple[str, ...]
    answer: int
    explanation: str | None = None
    deep_dive: str | None = None


@dataclass(frozen=True, slots=True)
class CategoryMeta:
    """Display metadata for a question category."""

    id: str
    name: str
    emoji: str = ""
    color: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class CategoryQuestions:
    """A category together with its raw questions in pack order."""

    meta: CategoryMeta
    questions: tuple[RawQuestion, ...]


@dataclass(frozen=True, slots=True)
class CategoryWeakness:
    """Per-category accuracy summary used by the review screen."""

    category_id: str
    name: str
    emoji: str
    color: str
    total_answered: int
    accuracy: int
    weak_count: int
