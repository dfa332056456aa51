from datetime import date
import random

import pytest

from conftest import ManualTickScheduler, make_pack, make_questions
from trivia_app.core.models import QuestionRecord, RoundPhase
from trivia_app.core.question_bank import QuestionBank
from trivia_app.core.round_manager import MODE_DAILY, MODE_REVIEW, RoundManager


def answer_correctly(manager):
    """Pick the choice labelled "right" (choices are shuffled per question)."""
    view = manager.get_current_question()
    return manager.submit_answer(view.choices.index("right"))


def answer_wrongly(manager):
    view = manager.get_current_question()
    return manager.submit_answer(view.choices.index("wrong 1"))


def finish_round(manager, answer=answer_correctly):
    while manager.get_phase() is RoundPhase.PLAYING:
        answer(manager)
        manager.next_question()


def test_category_round_records_history(manager, today):
    view = manager.start_category_round("science", no_timer=True)
    assert view.total_questions == 6
    assert manager.get_mode() == "category"

    outcome = answer_correctly(manager)
    assert outcome.correct
    history = manager.get_history()
    assert len(history) == 1
    (key, record), = history.items()
    assert key.startswith("science_")
    assert record == QuestionRecord(1, 0, today, True)


def test_unknown_category_raises(manager):
    with pytest.raises(KeyError):
        manager.start_category_round("nope")


def test_full_round_produces_result(manager):
    manager.start_category_round("history", no_timer=True)
    finish_round(manager)
    assert manager.get_phase() is RoundPhase.ROUND_COMPLETE
    result = manager.get_round_result()
    assert result.total == 6
    assert result.is_perfect
    assert result.score == manager.get_score()


def test_daily_round_is_the_same_for_everyone_on_a_date(bank, today):
    def daily_prompts(seed):
        player = RoundManager(bank, scheduler=ManualTickScheduler(), today_provider=lambda: today,
                              review_rng=random.Random(seed))
        prompts = []
        view = player.start_daily_round(no_timer=True)
        while view is not None:
            prompts.append(view.prompt)
            answer_correctly(player)
            view = player.next_question()
        player.destroy()
        return prompts

    first = daily_prompts(1)
    assert len(first) == 10
    assert daily_prompts(2) == first


def test_daily_round_changes_with_the_date(manager):
    def prompts(day):
        names = []
        view = manager.start_daily_round(today=day, no_timer=True)
        while view is not None:
            names.append(view.prompt)
            answer_correctly(manager)
            view = manager.next_question()
        return names

    def bank_prompt(position):
        category = "science" if position < 6 else "history"
        return f"{category} question {position % 6}"

    assert prompts(date(2024, 1, 15)) == [bank_prompt(p) for p in (9, 4, 0, 3, 1, 5, 10, 7, 11, 6)]
    assert prompts(date(2024, 1, 16)) == [bank_prompt(p) for p in (10, 1, 8, 2, 0, 11, 4, 9, 3, 6)]


def test_daily_round_can_only_be_completed_once_per_date(manager, today):
    assert manager.start_daily_round(no_timer=True) is not None
    assert not manager.has_played_daily()
    # Abandoning and restarting is allowed until the round is finished.
    assert manager.start_daily_round(no_timer=True) is not None
    finish_round(manager)
    assert manager.has_played_daily()
    assert manager.start_daily_round(no_timer=True) is None
    assert manager.start_daily_round(today=date(2024, 1, 16), no_timer=True) is not None


def test_review_round_prefers_missed_questions_and_has_no_timer(manager, scheduler):
    manager.start_category_round("science", no_timer=True)
    finish_round(manager, answer=answer_wrongly)
    missed = set(manager.get_history())
    assert len(missed) == 6

    view = manager.start_review_round()
    assert view is not None
    assert manager.get_mode() == MODE_REVIEW
    assert not manager.is_timer_enabled()
    assert scheduler.active_tasks == []
    assert view.total_questions == 10


def test_review_round_with_everything_mastered_returns_none(scheduler, today):
    bank = QuestionBank(rng=random.Random(1))
    bank.load_pack(make_pack(categories=("science",), per_category=2))
    manager = RoundManager(bank, scheduler=scheduler, today_provider=lambda: today)
    manager.load_history({
        "science_0": {"correct": 99, "wrong": 1, "lastSeen": "2024-01-15", "lastResult": True},
        "science_1": {"correct": 99, "wrong": 1, "lastSeen": "2024-01-15", "lastResult": True},
    })
    assert manager.start_review_round() is None
    assert manager.get_phase() is RoundPhase.IDLE


def test_time_up_counts_as_a_miss(manager, scheduler, today):
    time_ups = []
    manager.on_time_up(lambda: time_ups.append(manager.get_phase()))
    manager.start_category_round("science")
    scheduler.advance(15)

    assert time_ups == [RoundPhase.ANSWERED]
    (record,) = manager.get_history().values()
    assert record == QuestionRecord(0, 1, today, False)


def test_tick_handler_survives_new_rounds(manager, scheduler):
    ticks = []
    manager.on_tick(ticks.append)
    manager.start_category_round("science")
    manager.start_category_round("history")
    scheduler.advance(2)
    assert ticks == [15, 15, 14, 13]


def test_starting_a_new_round_cancels_the_old_timer(manager, scheduler):
    manager.start_category_round("science")
    old_task = scheduler.tasks[0]
    manager.start_category_round("history", no_timer=True)
    assert not old_task.active
    assert scheduler.active_tasks == []


def test_custom_round_does_not_touch_history(manager):
    manager.start_custom_round(make_questions(2), no_timer=True)
    finish_round(manager, answer=lambda m: m.submit_answer(0))
    assert manager.get_round_result().is_perfect
    assert manager.get_history() == {}


def test_weaknesses_reflect_session_history(manager):
    manager.start_category_round("history", no_timer=True)
    finish_round(manager, answer=answer_wrongly)
    weaknesses = {entry.category_id: entry for entry in manager.get_weaknesses()}
    assert weaknesses["history"].weak_count == 6
    assert weaknesses["history"].accuracy == 0
    assert weaknesses["history"].total_answered == 6
    assert weaknesses["science"].total_answered == 0


def test_daily_mode_reported(manager):
    manager.start_daily_round(no_timer=True)
    assert manager.get_mode() == MODE_DAILY


def test_finished_category_round_updates_progress(manager, today):
    manager.start_category_round("history", no_timer=True)
    assert manager.get_last_round_progress() is None
    finish_round(manager)

    score = manager.get_round_result().score
    change = manager.get_last_round_progress()
    assert change.is_high_score
    assert not change.level_up
    progress = manager.get_progress()
    assert progress.lifetime_score == score
    assert progress.play_streak == 1
    assert progress.last_play_date == today

    stats = manager.get_category_stats("history")
    assert stats.high_score == score
    assert stats.times_played == 1
    assert stats.accuracy == 100
    assert stats.stars == 3
    assert manager.get_level_info().current_score == score


def test_replaying_a_category_on_consecutive_days_extends_the_streak(bank, scheduler):
    days = [date(2024, 1, 15)]
    manager = RoundManager(bank, scheduler=scheduler, today_provider=lambda: days[0])

    manager.start_category_round("science", no_timer=True)
    finish_round(manager)
    days[0] = date(2024, 1, 16)
    manager.start_category_round("science", no_timer=True)
    finish_round(manager, answer=answer_wrongly)

    assert not manager.get_last_round_progress().is_high_score
    assert manager.get_progress().play_streak == 2
    assert manager.get_category_stats("science").times_played == 2
    assert manager.get_category_stats("science").accuracy == 50
    manager.destroy()


def test_daily_round_stores_its_score_but_not_lifetime_progress(manager, today):
    manager.start_daily_round(no_timer=True)
    assert manager.get_daily_result() is None
    finish_round(manager)

    assert manager.get_daily_result() == manager.get_round_result().score
    assert manager.get_daily_result(date(2024, 1, 16)) is None
    assert manager.get_progress().lifetime_score == 0
    assert manager.get_last_round_progress() is None


def test_review_rounds_are_tallied_under_review(manager):
    manager.start_category_round("science", no_timer=True)
    finish_round(manager, answer=answer_wrongly)
    manager.start_review_round()
    finish_round(manager)

    assert manager.get_category_stats("review").times_played == 1
    assert manager.get_player_stats().categories_played == 2


def test_custom_round_leaves_progress_alone(manager):
    manager.start_custom_round(make_questions(2), no_timer=True)
    finish_round(manager, answer=lambda m: m.submit_answer(0))
    assert manager.get_progress().lifetime_score == 0
    assert manager.get_last_round_progress() is None


def test_daily_round_for_another_date_records_that_date(manager):
    other_day = date(2024, 1, 20)
    manager.start_daily_round(today=other_day, no_timer=True)
    finish_round(manager)

    assert {record.last_seen for record in manager.get_history().values()} == {other_day}
    assert manager.get_daily_result(other_day) == manager.get_round_result().score
    assert manager.has_played_daily(other_day)
    assert not manager.has_played_daily()


def test_review_round_for_another_date_records_that_date(manager):
    manager.start_category_round("science", no_timer=True)
    finish_round(manager, answer=answer_wrongly)
    later = date(2024, 2, 1)
    manager.start_review_round(today=later)
    answer_correctly(manager)

    assert later in {record.last_seen for record in manager.get_history().values()}


def test_loaded_progress_is_carried_forward(manager, today):
    manager.load_progress({
        "lifetimeScore": 2700,
        "playStreak": 4,
        "lastPlayDate": "2024-01-14",
        "categories": {"science": {"highScore": 9999, "totalCorrect": 5, "totalAttempted": 10, "timesPlayed": 1}},
    })
    manager.start_category_round("science", no_timer=True)
    finish_round(manager)

    change = manager.get_last_round_progress()
    assert not change.is_high_score
    assert change.level_up
    assert change.level_after == 2
    assert manager.get_progress().play_streak == 5
