"""Tick scheduler backed by a Qt event loop."""

from __future__ import annotations

from PySide6.QtCore import QObject, QTimer

from trivia_app.core.scheduler import ScheduledTask, TickCallback


class QtScheduledTask:
    """Repeating ``QTimer`` that can be cancelled from inside its own callback."""

    def __init__(self, interval_seconds: float, callback: TickCallback, parent: QObject | None) -> None:
        self._callback = callback
        self._timer = QTimer(parent)
        self._timer.setInterval(int(interval_seconds * 1000))
        self._timer.timeout.connect(self._fire)

    @property
    def active(self) -> bool:
        return self._timer.isActive()

    def start(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        if self._timer.isActive():
            self._timer.stop()

    def _fire(self) -> None:
        # Events already queued can still arrive after stop().
        if self._timer.isActive():
            self._callback()


class QtTickScheduler:
    """Runs ticks on the thread owning the Qt event loop.

    Use it from a Qt application so the countdown shares the GUI thread and
    needs no extra synchronisation.
    """

    def __init__(self, parent: QObject | None = None) -> None:
        self._parent = parent

    def schedule_repeating(self, interval_seconds: float, callback: TickCallback) -> ScheduledTask:
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive.")
        task = QtScheduledTask(interval_seconds, callback, self._parent)
        task.start()
        return task
