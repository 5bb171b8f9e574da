"""Tests for goalritual/daily.py: carry-over, pinning, recurring items, tally."""

import copy
from datetime import date

from goalritual.daily import (
    add_recurring,
    add_todo,
    clear_completed,
    delete_recurring,
    delete_todo,
    is_visible,
    pin_task,
    progress,
    record_transition,
    roll_to,
    rollover,
    skip_recurring,
    today_view,
    toggle_pinned,
    toggle_recurring,
    toggle_todo,
    unpin_task,
    unskip_recurring,
    validate_days_of_week,
)
from goalritual.milestones import find_milestone
from goalritual.models import DailyState, DailyTodo, PinnedTask, RecurringDailyTask

MONDAY = date(2024, 1, 8)


# ── Rollover ──────────────────────────────────────────────────


def test_completed_pinned_dropped_next_day():
    daily = DailyState(
        pinned=[PinnedTask(id="p1", task_id="t", title="T", completed_date="2024-02-01")],
        last_rollover="2024-02-01",
        total_completed=4,
    )
    result = rollover(daily, "2024-02-01", "2024-02-02")
    assert daily.pinned == []
    assert result.dropped_pinned == ["p1"]
    assert daily.total_completed == 4
    assert daily.last_rollover == "2024-02-02"


def test_rollover_keeps_incomplete_items():
    daily = DailyState(
        todos=[DailyTodo(id="a", title="A", completed=True), DailyTodo(id="b", title="B")],
        pinned=[PinnedTask(id="p", task_id="t", title="T")],
    )
    rollover(daily, "2024-01-07", "2024-01-08")
    assert [t.id for t in daily.todos] == ["b"]
    assert [p.id for p in daily.pinned] == ["p"]


def test_rollover_same_day_is_noop():
    daily = DailyState(todos=[DailyTodo(id="a", title="A", completed=True)], last_rollover="2024-01-08")
    assert rollover(daily, "2024-01-08", "2024-01-08") is None
    assert len(daily.todos) == 1


def test_rollover_twice_equals_once():
    daily = DailyState(
        todos=[DailyTodo(id="a", title="A", completed=True), DailyTodo(id="b", title="B")],
        pinned=[PinnedTask(id="p", task_id="t", title="T", completed_date="2024-01-07")],
        last_rollover="2024-01-07",
    )
    roll_to(daily, "2024-01-08")
    once = copy.deepcopy(daily.to_dict())
    assert roll_to(daily, "2024-01-08") is None
    assert daily.to_dict() == once


def test_rollover_keeps_pinned_completed_today():
    daily = DailyState(pinned=[PinnedTask(id="p", task_id="t", title="T", completed_date="2024-01-08")])
    rollover(daily, "2024-01-07", "2024-01-08")
    assert len(daily.pinned) == 1


def test_rollover_leaves_recurring_alone():
    item = RecurringDailyTask(id="r", title="R", days_of_week=[1], completed_dates=["2024-01-01"])
    daily = DailyState(recurring=[item])
    rollover(daily, "2024-01-01", "2024-01-08")
    assert daily.recurring[0].completed_dates == ["2024-01-01"]


# ── Tally ─────────────────────────────────────────────────────


def test_tally_floor_at_zero():
    daily = DailyState()
    record_transition(daily, True, False)
    assert daily.total_completed == 0
    record_transition(daily, False, True)
    record_transition(daily, True, True)
    assert daily.total_completed == 1


def test_todo_toggle_updates_tally(sample_state):
    todo, _ = add_todo(sample_state, "Call mom", MONDAY)
    toggle_todo(sample_state, todo.id)
    assert sample_state.daily.total_completed == 1
    toggle_todo(sample_state, todo.id)
    assert sample_state.daily.total_completed == 0


def test_todo_crud(sample_state):
    _, errors = add_todo(sample_state, " ", MONDAY)
    assert errors
    a, _ = add_todo(sample_state, "A", MONDAY)
    b, _ = add_todo(sample_state, "B", MONDAY)
    toggle_todo(sample_state, a.id)
    cleared, _ = clear_completed(sample_state)
    assert cleared == 1
    ok, _ = delete_todo(sample_state, b.id)
    assert ok and sample_state.daily.todos == []
    _, errors = toggle_todo(sample_state, "missing")
    assert errors == ["Todo not found: missing"]


# ── Pinned ────────────────────────────────────────────────────


def test_pin_and_toggle_drives_milestone(sample_state):
    p1, errors = pin_task(sample_state, "m1", "mt1", MONDAY)
    assert errors == []
    assert p1.title == "Outline"
    p2, _ = pin_task(sample_state, "m1", "mt2", MONDAY)

    toggle_pinned(sample_state, p1.id, MONDAY)
    toggle_pinned(sample_state, p2.id, MONDAY)
    _, m = find_milestone(sample_state, "m1")
    assert m.completed
    assert sample_state.daily.total_completed == 2
    assert sample_state.daily.pinned[0].completed_date == "2024-01-08"

    toggle_pinned(sample_state, p1.id, MONDAY)
    _, m = find_milestone(sample_state, "m1")
    assert not m.completed
    assert sample_state.daily.total_completed == 1


def test_pin_duplicate_rejected(sample_state):
    pin_task(sample_state, "m1", "mt1", MONDAY)
    _, errors = pin_task(sample_state, "m1", "mt1", MONDAY)
    assert any("already pinned" in e for e in errors)


def test_pin_unknown_task(sample_state):
    _, errors = pin_task(sample_state, "m1", "nope", MONDAY)
    assert errors == ["Task not found: nope"]


def test_unpin(sample_state):
    p, _ = pin_task(sample_state, "m1", "mt1", MONDAY)
    ok, _ = unpin_task(sample_state, p.id)
    assert ok and sample_state.daily.pinned == []


def test_toggle_pinned_after_task_deleted(sample_state):
    p, _ = pin_task(sample_state, "m1", "mt1", MONDAY)
    sample_state.goals[0].milestones[0].tasks = []
    pinned, errors = toggle_pinned(sample_state, p.id, MONDAY)
    assert errors == []
    assert pinned.completed


# ── Recurring ─────────────────────────────────────────────────


def test_validate_days_of_week():
    assert validate_days_of_week([0, 6]) == []
    assert validate_days_of_week([]) != []
    assert validate_days_of_week([7]) != []
    assert validate_days_of_week("mon") != []


def test_recurring_visibility_and_toggle(sample_state):
    item, errors = add_recurring(sample_state, "Stretch", [1, 3, 1], MONDAY)
    assert errors == []
    assert item.days_of_week == [1, 3]
    assert is_visible(item, "2024-01-08")
    assert not is_visible(item, "2024-01-09")

    toggle_recurring(sample_state, item.id, MONDAY)
    assert sample_state.daily.recurring[0].completed_dates == ["2024-01-08"]
    assert sample_state.daily.total_completed == 1

    _, errors = toggle_recurring(sample_state, item.id, date(2024, 1, 9))
    assert errors


def test_skip_hides_only_that_day(sample_state):
    item, _ = add_recurring(sample_state, "Stretch", [1], MONDAY)
    skip_recurring(sample_state, item.id, MONDAY)
    skip_recurring(sample_state, item.id, MONDAY)
    item = sample_state.daily.recurring[0]
    assert item.skipped_dates == ["2024-01-08"]
    assert not is_visible(item, "2024-01-08")
    assert is_visible(item, "2024-01-15")
    unskip_recurring(sample_state, item.id, MONDAY)
    assert is_visible(sample_state.daily.recurring[0], "2024-01-08")


def test_delete_recurring(sample_state):
    item, _ = add_recurring(sample_state, "Stretch", [1], MONDAY)
    ok, _ = delete_recurring(sample_state, item.id)
    assert ok and sample_state.daily.recurring == []


# ── Read models ───────────────────────────────────────────────


def test_progress_and_view(sample_state):
    a, _ = add_todo(sample_state, "A", MONDAY)
    add_todo(sample_state, "B", MONDAY)
    r, _ = add_recurring(sample_state, "R", [1], MONDAY)
    add_recurring(sample_state, "Tue only", [2], MONDAY)
    toggle_todo(sample_state, a.id)
    toggle_recurring(sample_state, r.id, MONDAY)

    assert progress(sample_state.daily, "2024-01-08") == (2, 3)
    view = today_view(sample_state.daily, "2024-01-08")
    assert view["completed"] == 2
    assert view["total"] == 3
    assert [x["title"] for x in view["recurring"]] == ["R"]
    assert view["recurring"][0]["completedToday"] is True
    assert view["totalCompleted"] == 2


def test_rollover_ignores_clock_going_backwards():
    daily = DailyState(
        todos=[DailyTodo(id="a", title="A", completed=True)],
        pinned=[PinnedTask(id="p", task_id="t", title="T", completed_date="2024-01-09")],
        last_rollover="2024-01-09",
    )
    assert roll_to(daily, "2024-01-08") is None
    assert [t.id for t in daily.todos] == ["a"]
    assert [p.id for p in daily.pinned] == ["p"]
    assert daily.last_rollover == "2024-01-09"
    # clock recovers: same day as the last rollover, nothing to do
    assert roll_to(daily, "2024-01-09") is None
    assert len(daily.todos) == 1
