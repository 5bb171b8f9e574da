"""Tests for goalritual/models.py: JSON mapping and defaults."""

from goalritual.models import (
    AppState,
    CycleGroup,
    CycleTask,
    Goal,
    Milestone,
    PinnedTask,
    RecurringDailyTask,
    all_regular_done,
)


def test_cycle_task_separator_key():
    t = CycleTask.from_dict({"id": "s", "title": "Header", "isSeparator": True})
    assert t.is_separator
    assert t.to_dict()["isSeparator"] is True
    assert "isSeparator" not in CycleTask(id="a", title="A").to_dict()


def test_all_regular_done():
    sep = CycleTask(id="s", title="H", is_separator=True)
    assert not all_regular_done([])
    assert not all_regular_done([sep])
    assert all_regular_done([sep, CycleTask(id="a", completed=True)])
    assert not all_regular_done([CycleTask(id="a", completed=True), CycleTask(id="b")])


def test_cycle_group_from_dict_clamps():
    g = CycleGroup.from_dict({"id": "g", "recurrence": "weekly", "cycleStartDay": 1, "score": 400, "completionCount": -3})
    assert g.score == 100
    assert g.completion_count == 0
    assert g.cycle_start_day == 1


def test_cycle_group_omits_missing_anchor():
    d = CycleGroup(id="g", recurrence="daily").to_dict()
    assert "cycleStartDay" not in d
    assert d["lastResetDate"] is None


def test_milestone_defaults():
    m = Milestone.from_dict({"id": "m", "title": "M"})
    assert m.task_display_style == "checkbox"
    assert not m.is_derived
    m.tasks.append(CycleTask(id="a", title="A"))
    assert m.is_derived
    m.task_display_style = "bullet"
    assert not m.is_derived


def test_goal_uses_recurring_task_groups_key():
    g = Goal.from_dict({"id": "g", "title": "G", "recurringTaskGroups": [{"id": "x", "name": "X"}]})
    assert g.cycle_groups[0].id == "x"
    assert "recurringTaskGroups" in g.to_dict()


def test_pinned_task_completed_property():
    p = PinnedTask.from_dict({"id": "p", "taskTitle": "T", "completedDate": "2024-01-08"})
    assert p.completed
    assert p.title == "T"
    assert not PinnedTask(id="q").completed


def test_recurring_days_normalized():
    r = RecurringDailyTask.from_dict({"id": "r", "daysOfWeek": [3, 1, 3]})
    assert r.days_of_week == [1, 3]


def test_app_state_from_empty():
    s = AppState.from_dict({})
    assert s.goals == []
    assert s.daily.total_completed == 0
    assert AppState.from_dict(None).version == 1


def test_app_state_document_shape(sample_state):
    d = sample_state.to_dict()
    assert set(d) == {"version", "goals", "daily"}
    assert AppState.from_dict(d).to_dict() == d
    assert [g.id for g in sample_state.all_groups()] == ["weekly", "daily"]


def test_unreadable_dates_dropped_on_load(caplog):
    with caplog.at_level("WARNING"):
        g = CycleGroup.from_dict(
            {"id": "g", "recurrence": "daily", "startDate": "2024-01-01T08:00:00", "lastResetDate": "garbage"}
        )
    assert g.start_date == "2024-01-01"
    assert g.last_reset_date is None
    assert "lastResetDate" in caplog.text
    state = AppState.from_dict({"daily": {"lastRollover": "yesterday"}})
    assert state.daily.last_rollover is None
