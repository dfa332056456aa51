"""Round, scoring and selection constants shared across the core layers."""

TIME_LIMIT_SECONDS: int = 15
TICK_INTERVAL_SECONDS: float = 1.0
QUESTIONS_PER_ROUND: int = 10

BASE_POINTS: int = 100
MAX_SPEED_BONUS: int = 50
PERFECT_BONUS: int = 500

# (minimum streak, multiplier), highest tier first.
STREAK_MULTIPLIERS: tuple[tuple[int, float], ...] = (
    (10, 3.0),
    (5, 2.0),
    (3, 1.5),
)

# (minimum accuracy percentage, stars), highest tier first.
STAR_THRESHOLDS: tuple[tuple[int, int], ...] = (
    (90, 3),
    (70, 2),
)
MIN_STARS: int = 1

DAILY_QUESTION_COUNT: int = 10
REVIEW_QUESTION_COUNT: int = 10

# Review weighting
UNANSWERED_WEIGHT: float = 2.0
RECENT_MISS_WEIGHT: float = 4.0
WRONG_RATE_FACTOR: float = 3.0
MASTERED_WEIGHT_CUTOFF: float = 0.1
WEAK_WRONG_RATE: float = 0.5
UNSEEN_DAYS: int = 999
# (days since last seen is below, weight), checked in order.
RECENCY_WEIGHTS: tuple[tuple[int, float], ...] = (
    (1, 0.3),
    (3, 0.5),
    (7, 0.8),
)
SETTLED_WEIGHT: float = 1.0
