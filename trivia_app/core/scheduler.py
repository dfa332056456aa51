"""Repeating-task capability used to drive the per-question countdown.

The round engine never talks to a clock directly. It asks a scheduler to run
a callback every ``interval_seconds`` and keeps the returned task so it can
cancel it when an answer arrives or the round is torn down.
"""

from __future__ import annotations

import logging
from threading import Event, Thread
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


class ScheduledTask(Protocol):
    """Handle for a running repeating task."""

    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    """Anything able to start a cancellable repeating task."""

    def schedule_repeating(self, interval_seconds: float, callback: TickCallback) -> ScheduledTask: ...


class _ThreadTask:
    """Repeating task backed by a daemon thread waiting on an event."""

    def __init__(self, interval_seconds: float, callback: TickCallback, name: str) -> None:
        self._interval = interval_seconds
        self._callback = callback
        self._stopped = Event()
        self._thread = Thread(target=self._run, name=name, daemon=True)

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()

    def _run(self) -> None:
        # wait() returns True as soon as cancel() is called, ending the loop.
        while not self._stopped.wait(self._interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Tick callback failed; stopping task %s", self._thread.name)
                self._stopped.set()


class ThreadingTickScheduler:
    """Scheduler running each repeating task on its own daemon thread.

    Callbacks run off the caller's thread, so the consumer must serialise its
    own state; ``RoundEngine`` does this with its round lock.
    """

    def __init__(self, thread_name: str = "RoundTimer") -> None:
        self._thread_name = thread_name
        self._counter = 0

    def schedule_repeating(self, interval_seconds: float, callback: TickCallback) -> ScheduledTask:
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive.")
        self._counter += 1
        task = _ThreadTask(interval_seconds, callback, f"{self._thread_name}-{self._counter}")
        task.start()
        return task
