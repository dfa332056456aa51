"""Player level milestones and titles."""

MAX_LEVEL: int = 50

# (lifetime score, level), ascending. Levels between milestones are interpolated.
LEVEL_MILESTONES: tuple[tuple[int, int], ...] = (
    (0, 1),
    (2800, 2),
    (8000, 3),
    (15000, 4),
    (25000, 5),
    (40000, 7),
    (60000, 10),
    (90000, 15),
    (130000, 20),
    (170000, 25),
    (210000, 30),
    (270000, 40),
    (340000, 50),
)

# Returned when a level lies beyond every milestone.
UNREACHABLE_LEVEL_SCORE: int = 500000

# (minimum level, title), ascending.
LEVEL_TITLES: tuple[tuple[int, str], ...] = (
    (1, "Fledgling"),
    (2, "Freshly Hatched Learner"),
    (3, "Curious Egg"),
    (4, "Somewhat in the Know"),
    (5, "Trivia Apprentice"),
    (7, "Fact Collector"),
    (10, "Trivia Hunter"),
    (13, "Know-It-All Boss"),
    (15, "Walking Encyclopedia"),
    (18, "Quiz Demon"),
    (20, "Erudite Master"),
    (23, "Wizard of Knowledge"),
    (25, "All-Round Intellectual"),
    (28, "Living Dictionary of Trivia"),
    (30, "Trivia King"),
    (33, "Guardian of Knowledge"),
    (35, "Maniac of All Things"),
    (38, "Human Search Engine"),
    (40, "Legendary Quiz Champion"),
    (43, "Knowledge Incarnate"),
    (45, "Genius Among Geniuses"),
    (48, "Transcendent One"),
    (50, "All-Knowing Deity"),
)

# Category id under which review rounds are tallied.
REVIEW_STATS_CATEGORY: str = "review"
