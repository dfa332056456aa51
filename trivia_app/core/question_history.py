"""Helpers for the per-question answer history kept by the caller.

The core never stores history itself. Callers hand in whatever their storage
produced (often loosely-typed JSON) and get typed ``QuestionRecord`` values
back; anything that cannot be read is treated as if no record existed.
"""

from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Any, Mapping

from trivia_app.core.models import QuestionRecord

logger = logging.getLogger(__name__)


def history_key(category_id: str, question_index: int) -> str:
    return f"{category_id}_{question_index}"


def parse_question_record(raw: Any) -> QuestionRecord | None:
    """Convert a stored record into a ``QuestionRecord``; ``None`` if malformed."""
    if isinstance(raw, QuestionRecord):
        return raw
    if not isinstance(raw, Mapping):
        return None

    correct = raw.get("correct", raw.get("correct_count"))
    wrong = raw.get("wrong", raw.get("wrong_count"))
    if not _is_count(correct) or not _is_count(wrong):
        return None

    last_seen_raw = raw.get("lastSeen", raw.get("last_seen"))
    if last_seen_raw is None:
        last_seen = None
    elif isinstance(last_seen_raw, datetime):
        last_seen = last_seen_raw.date()
    elif isinstance(last_seen_raw, date):
        last_seen = last_seen_raw
    elif isinstance(last_seen_raw, str):
        try:
            last_seen = date.fromisoformat(last_seen_raw[:10])
        except ValueError:
            return None
    else:
        return None

    last_result = raw.get("lastResult", raw.get("last_result"))
    if last_result is not None and not isinstance(last_result, bool):
        return None

    return QuestionRecord(
        correct_count=correct,
        wrong_count=wrong,
        last_seen=last_seen,
        last_result=last_result,
    )


def parse_history(raw_history: Mapping[str, Any] | None) -> dict[str, QuestionRecord]:
    """Parse a whole history mapping, dropping entries that cannot be read."""
    history: dict[str, QuestionRecord] = {}
    if not raw_history:
        return history
    for key, raw in raw_history.items():
        record = parse_question_record(raw)
        if record is None:
            logger.warning("Ignoring unreadable history record for %s", key)
            continue
        history[str(key)] = record
    return history


def record_question_result(
    history: Mapping[str, QuestionRecord],
    category_id: str,
    question_index: int,
    correct: bool,
    today: date | None = None,
) -> dict[str, QuestionRecord]:
    """Return a copy of ``history`` with one more attempt recorded."""
    key = history_key(category_id, question_index)
    previous = history.get(key) or QuestionRecord()
    updated = dict(history)
    updated[key] = QuestionRecord(
        correct_count=previous.correct_count + (1 if correct else 0),
        wrong_count=previous.wrong_count + (0 if correct else 1),
        last_seen=today or date.today(),
        last_result=correct,
    )
    return updated


def history_to_json(history: Mapping[str, QuestionRecord]) -> dict[str, dict[str, Any]]:
    """Serialise history in the same shape ``parse_history`` reads."""
    return {
        key: {
            "correct": record.correct_count,
            "wrong": record.wrong_count,
            "lastSeen": record.last_seen.isoformat() if record.last_seen else None,
            "lastResult": record.last_result,
        }
        for key, record in history.items()
    }


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
