from datetime import date, timedelta
import random

import pytest

from trivia_app.core.models import CategoryMeta, CategoryQuestions, QuestionRecord, RawQuestion
from trivia_app.core.services.review_selector import (
    ReviewCandidate,
    analyze_weaknesses,
    build_candidates,
    calc_weight,
    select_review_questions,
    weighted_select,
)

TODAY = date(2024, 1, 15)


class FixedRandom:
    def __init__(self, values):
        self._values = list(values)

    def random(self):
        return self._values.pop(0)


def raw(text):
    return RawQuestion(text=text, choices=("a", "b"), answer=0)


def category(category_id, count):
    return CategoryQuestions(
        meta=CategoryMeta(id=category_id, name=category_id.title()),
        questions=tuple(raw(f"{category_id}-{n}") for n in range(count)),
    )


def correct_record(days_ago=None, correct=3):
    last_seen = TODAY - timedelta(days=days_ago) if days_ago is not None else None
    return QuestionRecord(correct_count=correct, wrong_count=0, last_seen=last_seen, last_result=True)


def test_unanswered_questions_weigh_two():
    assert calc_weight(None, TODAY) == 2
    assert calc_weight(QuestionRecord(), TODAY) == 2


def test_recent_miss_weighs_four_even_with_good_record():
    record = QuestionRecord(correct_count=9, wrong_count=1, last_seen=TODAY, last_result=False)
    assert calc_weight(record, TODAY) == 4


def test_missing_last_result_counts_as_a_miss():
    record = QuestionRecord(correct_count=2, wrong_count=0, last_seen=TODAY, last_result=None)
    assert calc_weight(record, TODAY) == 4


def test_wrong_rate_weight_when_last_attempt_was_correct():
    record = QuestionRecord(correct_count=1, wrong_count=3, last_seen=TODAY, last_result=True)
    assert calc_weight(record, TODAY) == pytest.approx(2.25)


@pytest.mark.parametrize(
    "days_ago, expected",
    [(0, 0.3), (1, 0.5), (2, 0.5), (3, 0.8), (6, 0.8), (7, 1.0), (30, 1.0), (None, 1.0)],
)
def test_recency_weights_for_always_correct_questions(days_ago, expected):
    assert calc_weight(correct_record(days_ago), TODAY) == expected


def test_recent_miss_outranks_fresh_correct():
    miss = QuestionRecord(correct_count=0, wrong_count=1, last_seen=TODAY, last_result=False)
    assert calc_weight(miss, TODAY) > calc_weight(correct_record(0), TODAY)


def test_malformed_records_behave_like_absent_ones():
    assert calc_weight({"correct": "three", "wrong": 1}, TODAY) == 2
    assert calc_weight({"wrong": 1}, TODAY) == 2
    assert calc_weight({"correct": 1, "wrong": 0, "lastSeen": "yesterday"}, TODAY) == 2
    assert calc_weight("garbage", TODAY) == 2


def test_loosely_typed_records_are_understood():
    stored = {"correct": 2, "wrong": 0, "lastSeen": "2024-01-13", "lastResult": True}
    assert calc_weight(stored, TODAY) == 0.5


def test_weighted_select_orders_by_randomised_weight():
    candidates = [
        ReviewCandidate(question=raw(name), weight=1.0, category_id="c", question_index=n)
        for n, name in enumerate(["a", "b", "c"])
    ]
    picked = weighted_select(candidates, 3, rng=FixedRandom([0.0, 0.9, 0.5]))
    assert [q.text for q in picked] == ["b", "c", "a"]


def test_weighted_select_truncates_and_handles_short_pools():
    candidates = [
        ReviewCandidate(question=raw(str(n)), weight=2.0, category_id="c", question_index=n)
        for n in range(3)
    ]
    assert len(weighted_select(candidates, 2, rng=random.Random(1))) == 2
    assert len(weighted_select(candidates, 10, rng=random.Random(1))) == 3
    assert weighted_select([], 10) == []


def test_selection_is_reproducible_with_seeded_rng():
    categories = [category("science", 8), category("history", 8)]
    history = {"science_1": QuestionRecord(0, 2, TODAY, False)}
    first = select_review_questions(categories, history, 5, TODAY, random.Random(99))
    second = select_review_questions(categories, history, 5, TODAY, random.Random(99))
    assert first == second
    assert len({q.text for q in first}) == 5


def test_mastered_questions_never_selected():
    categories = [category("science", 3)]
    history = {
        # wrong rate 1/100 -> weight 0.03, treated as mastered
        "science_0": QuestionRecord(correct_count=99, wrong_count=1, last_seen=TODAY, last_result=True),
        # wrong rate 1/30 -> weight exactly 0.1, still excluded
        "science_1": QuestionRecord(correct_count=29, wrong_count=1, last_seen=TODAY, last_result=True),
    }
    candidates = build_candidates(categories, history, TODAY)
    assert [c.question_index for c in candidates] == [2]

    rng = random.Random(5)
    for _ in range(50):
        picked = select_review_questions(categories, history, 10, TODAY, rng)
        assert [q.text for q in picked] == ["science-2"]


def test_heavier_questions_are_picked_more_often():
    categories = [category("science", 2)]
    history = {"science_0": QuestionRecord(0, 1, TODAY, False)}
    rng = random.Random(11)
    first_picks = [
        select_review_questions(categories, history, 1, TODAY, rng)[0].text for _ in range(200)
    ]
    # weight 4 against 2: the heavy one only loses when 2 * (0.5 + r2) > 4 * (0.5 + r1)
    assert first_picks.count("science-0") > first_picks.count("science-1")
    assert "science-1" in first_picks


def test_analyze_weaknesses_sorts_worst_first():
    metas = [CategoryMeta(id="science", name="Science"), CategoryMeta(id="history", name="History"),
             CategoryMeta(id="art", name="Art")]
    history = {
        "science_0": {"correct": 3, "wrong": 1, "lastSeen": "2024-01-10", "lastResult": True},
        "science_1": {"correct": 0, "wrong": 2, "lastSeen": "2024-01-10", "lastResult": False},
        "history_0": {"correct": 1, "wrong": 1, "lastSeen": "2024-01-10", "lastResult": True},
        "history_1": {"correct": 9, "wrong": 0, "lastSeen": "2024-01-10", "lastResult": True},
        "history_x": {"correct": 0, "wrong": 50},
        "science_2": {"correct": "bad"},
    }
    analysis = analyze_weaknesses(metas, history)

    assert [entry.category_id for entry in analysis] == ["art", "science", "history"]
    art, science, history_entry = analysis
    assert art.total_answered == 0 and art.accuracy == 0 and art.weak_count == 0
    assert science.total_answered == 6
    assert science.accuracy == 50
    assert science.weak_count == 1
    assert history_entry.total_answered == 11
    assert history_entry.accuracy == 91
    assert history_entry.weak_count == 1


def test_analyze_weaknesses_ignores_longer_ids_with_same_prefix():
    metas = [CategoryMeta(id="science", name="Science")]
    history = {"science_fiction_0": {"correct": 0, "wrong": 5}}
    assert analyze_weaknesses(metas, history)[0].total_answered == 0
