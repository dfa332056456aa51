"""Deterministic shuffling for the daily challenge.

Every player must get the same daily set on the same calendar date, on any
platform, so the generator is a fixed mulberry32 implementation instead of
Python's ``random`` module. Its output sequence for a given seed is part of
the contract and is pinned by tests.
"""

from __future__ import annotations

from datetime import date
import logging
from typing import Sequence, TypeVar

from trivia_app.constants.round_constants import DAILY_QUESTION_COUNT

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MASK_32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296


def _imul(a: int, b: int) -> int:
    """Low 32 bits of a 32x32-bit multiplication."""
    return (a * b) & _MASK_32


class Mulberry32:
    """Seeded 32-bit generator producing floats in [0, 1)."""

    def __init__(self, seed: int) -> None:
        self._state = seed & _MASK_32

    def next_uint32(self) -> int:
        self._state = (self._state + _INCREMENT) & _MASK_32
        state = self._state
        t = _imul(state ^ (state >> 15), state | 1)
        t = ((t + _imul(t ^ (t >> 7), t | 61)) & _MASK_32) ^ t
        return (t ^ (t >> 14)) & _MASK_32

    def random(self) -> float:
        return self.next_uint32() / _TWO_POW_32


def daily_seed(today: date | None = None) -> int:
    """Return the YYYYMMDD seed for ``today`` (local date when omitted)."""
    if today is None:
        today = date.today()
    return today.year * 10000 + today.month * 100 + today.day


def seeded_shuffle(items: Sequence[T], seed: int) -> list[T]:
    """Fisher-Yates shuffle driven by ``Mulberry32(seed)``; ``items`` is left untouched."""
    shuffled = list(items)
    rng = Mulberry32(seed)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def select_daily(
    pool: Sequence[T],
    count: int = DAILY_QUESTION_COUNT,
    today: date | None = None,
) -> list[T]:
    """Pick the daily challenge set: the first ``count`` items of the seeded shuffle."""
    seed = daily_seed(today)
    selection = seeded_shuffle(pool, seed)[:max(0, count)]
    logger.debug("Daily selection for seed %d: %d of %d items", seed, len(selection), len(pool))
    return selection
