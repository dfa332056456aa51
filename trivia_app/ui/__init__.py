"""Qt integration for hosting rounds inside a Qt event loop."""

from .qt_scheduler import QtScheduledTask, QtTickScheduler

__all__ = [
    "QtScheduledTask",
    "QtTickScheduler",
]
