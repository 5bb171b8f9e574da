"""Today's list: ad-hoc todos, pinned milestone tasks and weekday-recurring items.

The list rolls over at local midnight. Completed todos are dropped and
incomplete ones carry over; pinned items survive only while incomplete or
completed on the current day. Recurring items keep per-day completion and
skip records, so rollover leaves them alone.

An all-time tally counts every false -> true completion across all three
kinds and gives one back (never below zero) on true -> false. Rollover does
not touch it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from goalritual import milestones
from goalritual.models import (
    AppState,
    DailyState,
    DailyTodo,
    PinnedTask,
    RecurringDailyTask,
    new_id,
)
from goalritual.recurrence import weekday_sun0

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rollover:
    previous: str | None
    current: str
    dropped_todos: list[str] = field(default_factory=list)
    dropped_pinned: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "previous": self.previous,
            "current": self.current,
            "droppedTodos": list(self.dropped_todos),
            "droppedPinned": list(self.dropped_pinned),
        }


# ── Tally ─────────────────────────────────────────────────────


def record_transition(daily: DailyState, was_completed: bool, is_completed: bool) -> None:
    if is_completed and not was_completed:
        daily.total_completed += 1
    elif was_completed and not is_completed:
        daily.total_completed = max(0, daily.total_completed - 1)


# ── Rollover ──────────────────────────────────────────────────


def rollover(daily: DailyState, previous_key: str | None, current_key: str) -> Rollover | None:
    """Prune the list for a new local day.

    Returns None when the day has not changed or the clock went backwards;
    ``last_rollover`` only ever moves forward.
    """
    if previous_key == current_key:
        return None
    if previous_key is not None and current_key < previous_key:
        logger.warning("Clock is behind last rollover (%s < %s); keeping daily list", current_key, previous_key)
        return None

    dropped_todos = [t.id for t in daily.todos if t.completed]
    daily.todos = [t for t in daily.todos if not t.completed]

    dropped_pinned = [
        p.id for p in daily.pinned if p.completed_date is not None and p.completed_date != current_key
    ]
    daily.pinned = [p for p in daily.pinned if p.id not in dropped_pinned]

    daily.last_rollover = current_key
    if dropped_todos or dropped_pinned:
        logger.info(
            "Rolled daily list %s -> %s: dropped %d todos, %d pinned",
            previous_key, current_key, len(dropped_todos), len(dropped_pinned),
        )
    return Rollover(previous_key, current_key, dropped_todos, dropped_pinned)


def roll_to(daily: DailyState, current_key: str) -> Rollover | None:
    """Roll from the last recorded day key to ``current_key``."""
    return rollover(daily, daily.last_rollover, current_key)


# ── Ad-hoc todos ──────────────────────────────────────────────


def _find(items: list, item_id: str):
    for item in items:
        if item.id == item_id:
            return item
    return None


def add_todo(state: AppState, title: str, today: date) -> tuple[DailyTodo | None, list[str]]:
    if not isinstance(title, str) or not title.strip():
        return None, ["Todo title must not be empty"]
    todo = DailyTodo(id=new_id(), title=title.strip(), created_at=today.isoformat())
    state.daily.todos.append(todo)
    return todo, []


def toggle_todo(state: AppState, todo_id: str) -> tuple[DailyTodo | None, list[str]]:
    todo = _find(state.daily.todos, todo_id)
    if not todo:
        return None, [f"Todo not found: {todo_id}"]
    record_transition(state.daily, todo.completed, not todo.completed)
    todo.completed = not todo.completed
    return todo, []


def delete_todo(state: AppState, todo_id: str) -> tuple[bool, list[str]]:
    if not _find(state.daily.todos, todo_id):
        return False, [f"Todo not found: {todo_id}"]
    state.daily.todos = [t for t in state.daily.todos if t.id != todo_id]
    return True, []


def clear_completed(state: AppState) -> tuple[int, list[str]]:
    before = len(state.daily.todos)
    state.daily.todos = [t for t in state.daily.todos if not t.completed]
    return before - len(state.daily.todos), []


# ── Pinned milestone tasks ────────────────────────────────────


def pin_task(
    state: AppState, milestone_id: str, task_id: str, today: date
) -> tuple[PinnedTask | None, list[str]]:
    """Pin a milestone task to today's list."""
    goal, milestone = milestones.find_milestone(state, milestone_id)
    if not milestone:
        return None, [f"Milestone not found: {milestone_id}"]
    task = next((t for t in milestone.tasks if t.id == task_id), None)
    if not task:
        return None, [f"Task not found: {task_id}"]
    if task.is_separator:
        return None, ["Separators cannot be pinned"]
    if any(p.task_id == task_id for p in state.daily.pinned):
        return None, [f"Task already pinned: {task_id}"]

    pinned = PinnedTask(
        id=new_id(),
        goal_id=goal.id,
        milestone_id=milestone.id,
        task_id=task.id,
        title=task.title,
        pinned_at=today.isoformat(),
        completed_date=today.isoformat() if task.completed else None,
    )
    state.daily.pinned.append(pinned)
    return pinned, []


def unpin_task(state: AppState, pinned_id: str) -> tuple[bool, list[str]]:
    if not _find(state.daily.pinned, pinned_id):
        return False, [f"Pinned task not found: {pinned_id}"]
    state.daily.pinned = [p for p in state.daily.pinned if p.id != pinned_id]
    return True, []


def toggle_pinned(state: AppState, pinned_id: str, today: date) -> tuple[PinnedTask | None, list[str]]:
    """Flip a pinned item and the milestone task behind it."""
    pinned = _find(state.daily.pinned, pinned_id)
    if not pinned:
        return None, [f"Pinned task not found: {pinned_id}"]
    now_completed = not pinned.completed

    _goal, milestone = milestones.find_milestone(state, pinned.milestone_id)
    if milestone and any(t.id == pinned.task_id for t in milestone.tasks):
        _task, errors = milestones.set_task_completed(state, pinned.milestone_id, pinned.task_id, now_completed)
        if errors:
            return None, errors

    record_transition(state.daily, pinned.completed, now_completed)
    pinned.completed_date = today.isoformat() if now_completed else None
    return pinned, []


# ── Weekday-recurring items ───────────────────────────────────


def _weekday_of(day_key: str) -> int:
    return weekday_sun0(date.fromisoformat(day_key))


def validate_days_of_week(days: Any) -> list[str]:
    if not isinstance(days, list) or not days:
        return ["daysOfWeek must be a non-empty list"]
    if any(isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6 for d in days):
        return ["daysOfWeek entries must be integers 0-6 (Sunday-Saturday)"]
    return []


def is_visible(item: RecurringDailyTask, day_key: str) -> bool:
    return _weekday_of(day_key) in item.days_of_week and day_key not in item.skipped_dates


def is_completed_on(item: RecurringDailyTask, day_key: str) -> bool:
    return day_key in item.completed_dates


def visible_recurring(daily: DailyState, day_key: str) -> list[RecurringDailyTask]:
    return [r for r in daily.recurring if is_visible(r, day_key)]


def skip(item: RecurringDailyTask, day_key: str) -> RecurringDailyTask:
    """Hide one occurrence. Other days are unaffected."""
    if day_key not in item.skipped_dates:
        item.skipped_dates.append(day_key)
    return item


def add_recurring(
    state: AppState, title: str, days_of_week: list[int], today: date
) -> tuple[RecurringDailyTask | None, list[str]]:
    errors = []
    if not isinstance(title, str) or not title.strip():
        errors.append("Recurring task title must not be empty")
    errors.extend(validate_days_of_week(days_of_week))
    if errors:
        return None, errors
    item = RecurringDailyTask(
        id=new_id(),
        title=title.strip(),
        days_of_week=sorted(set(days_of_week)),
        created_at=today.isoformat(),
    )
    state.daily.recurring.append(item)
    return item, []


def toggle_recurring(state: AppState, item_id: str, today: date) -> tuple[RecurringDailyTask | None, list[str]]:
    item = _find(state.daily.recurring, item_id)
    if not item:
        return None, [f"Recurring task not found: {item_id}"]
    key = today.isoformat()
    if not is_visible(item, key):
        return None, [f"Recurring task is not scheduled for {key}"]
    was_completed = is_completed_on(item, key)
    if was_completed:
        item.completed_dates = [d for d in item.completed_dates if d != key]
    else:
        item.completed_dates.append(key)
    record_transition(state.daily, was_completed, not was_completed)
    return item, []


def skip_recurring(state: AppState, item_id: str, today: date) -> tuple[RecurringDailyTask | None, list[str]]:
    item = _find(state.daily.recurring, item_id)
    if not item:
        return None, [f"Recurring task not found: {item_id}"]
    return skip(item, today.isoformat()), []


def unskip_recurring(state: AppState, item_id: str, today: date) -> tuple[RecurringDailyTask | None, list[str]]:
    item = _find(state.daily.recurring, item_id)
    if not item:
        return None, [f"Recurring task not found: {item_id}"]
    key = today.isoformat()
    item.skipped_dates = [d for d in item.skipped_dates if d != key]
    return item, []


def delete_recurring(state: AppState, item_id: str) -> tuple[bool, list[str]]:
    if not _find(state.daily.recurring, item_id):
        return False, [f"Recurring task not found: {item_id}"]
    state.daily.recurring = [r for r in state.daily.recurring if r.id != item_id]
    return True, []


# ── Read models ───────────────────────────────────────────────


def progress(daily: DailyState, day_key: str) -> tuple[int, int]:
    """(completed, total) across everything on today's list."""
    recurring = visible_recurring(daily, day_key)
    total = len(daily.todos) + len(daily.pinned) + len(recurring)
    done = (
        sum(1 for t in daily.todos if t.completed)
        + sum(1 for p in daily.pinned if p.completed)
        + sum(1 for r in recurring if is_completed_on(r, day_key))
    )
    return done, total


def today_view(daily: DailyState, day_key: str) -> dict[str, Any]:
    done, total = progress(daily, day_key)
    return {
        "day": day_key,
        "todos": [t.to_dict() for t in daily.todos],
        "pinned": [p.to_dict() for p in daily.pinned],
        "recurring": [
            {**r.to_dict(), "completedToday": is_completed_on(r, day_key)}
            for r in visible_recurring(daily, day_key)
        ],
        "completed": done,
        "total": total,
        "totalCompleted": daily.total_completed,
    }
