from datetime import date
import random

import pytest

from trivia_app.core.models import Question
from trivia_app.core.question_bank import QuestionBank
from trivia_app.core.round_manager import RoundManager
from trivia_app.core.services.round_engine import RoundEngine


class ManualTask:
    def __init__(self, callback):
        self.callback = callback
        self.active = True

    def cancel(self):
        self.active = False


class ManualTickScheduler:
    """Scheduler that only ticks when the test says so."""

    def __init__(self):
        self.tasks = []

    def schedule_repeating(self, interval_seconds, callback):
        task = ManualTask(callback)
        self.tasks.append(task)
        return task

    def advance(self, ticks=1):
        for _ in range(ticks):
            for task in [t for t in self.tasks if t.active]:
                task.callback()

    @property
    def active_tasks(self):
        return [t for t in self.tasks if t.active]


def make_questions(count, correct_index=0):
    return [
        Question(
            prompt=f"Question {n + 1}",
            choices=("A", "B", "C", "D"),
            correct_index=correct_index,
            explanation=f"Explanation {n + 1}",
        )
        for n in range(count)
    ]


def make_pack(categories=("science", "history"), per_category=6):
    return {
        "categories": [
            {
                "meta": {"id": category_id, "name": category_id.title()},
                "questions": [
                    {
                        "q": f"{category_id} question {n}",
                        "choices": ["right", "wrong 1", "wrong 2", "wrong 3"],
                        "answer": 0,
                        "explanation": f"{category_id} explanation {n}",
                    }
                    for n in range(per_category)
                ],
            }
            for category_id in categories
        ]
    }


@pytest.fixture()
def scheduler():
    return ManualTickScheduler()


@pytest.fixture()
def engine(scheduler):
    round_engine = RoundEngine(scheduler)
    yield round_engine
    round_engine.destroy()


@pytest.fixture()
def bank():
    question_bank = QuestionBank(rng=random.Random(7))
    question_bank.load_pack(make_pack())
    return question_bank


@pytest.fixture()
def today():
    return date(2024, 1, 15)


@pytest.fixture()
def manager(bank, scheduler, today):
    round_manager = RoundManager(
        bank,
        scheduler=scheduler,
        today_provider=lambda: today,
        review_rng=random.Random(3),
    )
    yield round_manager
    round_manager.destroy()
