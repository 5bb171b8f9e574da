"""Cycle group CRUD, validation and task operations for GoalRitual.

Every mutator takes the AppState first and returns ``(result, errors)``;
a non-empty error list means nothing was changed.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from goalritual.goals import find_goal
from goalritual.models import AppState, CycleGroup, CycleTask, new_id
from goalritual.recurrence import parse_day, validate_schedule
from goalritual.reset import AppliedReset, manual_reset


# Fields callers may edit. Score, completion count and the reset checkpoint
# belong to the reset engine.
EDITABLE_FIELDS = {"name", "recurrence", "cycleStartDay", "startDate"}


# ── Validation ────────────────────────────────────────────────


def validate_group(group: dict[str, Any]) -> list[str]:
    """Validate group schema and return list of errors (empty if valid)."""
    errors = []
    name = group.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Missing required field: name")
    if "recurrence" not in group:
        errors.append("Missing required field: recurrence")
    else:
        errors.extend(validate_schedule(group["recurrence"], group.get("cycleStartDay")))
    start = group.get("startDate")
    if start:
        try:
            parse_day(start)
        except (TypeError, ValueError):
            errors.append(f"Invalid startDate: {start}")
    return errors


def _validate_title(title: Any) -> list[str]:
    if not isinstance(title, str) or not title.strip():
        return ["Task title must not be empty"]
    return []


# ── Lookup ────────────────────────────────────────────────────


def find_group(state: AppState, group_id: str) -> CycleGroup | None:
    for goal in state.goals:
        for g in goal.cycle_groups:
            if g.id == group_id:
                return g
    return None


def find_task(group: CycleGroup, task_id: str) -> CycleTask | None:
    for t in group.tasks:
        if t.id == task_id:
            return t
    return None


# ── Group CRUD ────────────────────────────────────────────────


def create_group(
    state: AppState, goal_id: str, group_data: dict[str, Any], today: date
) -> tuple[CycleGroup | None, list[str]]:
    """Create a cycle group under a goal. The first cycle starts on startDate (default today)."""
    goal = find_goal(state, goal_id)
    if not goal:
        return None, [f"Goal not found: {goal_id}"]
    errors = validate_group(group_data)
    if errors:
        return None, errors

    start = parse_day(group_data.get("startDate")) or today
    recurrence = group_data["recurrence"]
    group = CycleGroup(
        id=new_id(),
        name=group_data["name"].strip(),
        recurrence=recurrence,
        cycle_start_day=None if recurrence == "daily" else group_data.get("cycleStartDay"),
        start_date=start.isoformat(),
        last_reset_date=start.isoformat(),
    )
    goal.cycle_groups.append(group)
    return group, []


def update_group(
    state: AppState, group_id: str, updates: dict[str, Any]
) -> tuple[CycleGroup | None, list[str]]:
    """Update name/schedule fields of a group. Other keys are ignored."""
    group = find_group(state, group_id)
    if not group:
        return None, [f"Group not found: {group_id}"]

    merged = {
        "name": group.name,
        "recurrence": group.recurrence,
        "cycleStartDay": group.cycle_start_day,
        "startDate": group.start_date,
    }
    merged.update({k: v for k, v in updates.items() if k in EDITABLE_FIELDS})
    if merged["recurrence"] == "daily":
        merged["cycleStartDay"] = None

    errors = validate_group(merged)
    if errors:
        return None, errors

    group.name = merged["name"].strip()
    group.recurrence = merged["recurrence"]
    group.cycle_start_day = merged["cycleStartDay"]
    if "startDate" in updates and merged["startDate"]:
        start = parse_day(merged["startDate"])
        group.start_date = start.isoformat()
        # A postponed schedule starts its first cycle on the new start date.
        last = parse_day(group.last_reset_date)
        if last is None or start > last:
            group.last_reset_date = start.isoformat()
    return group, []


def delete_group(state: AppState, group_id: str) -> tuple[bool, list[str]]:
    for goal in state.goals:
        for i, g in enumerate(goal.cycle_groups):
            if g.id == group_id:
                goal.cycle_groups.pop(i)
                return True, []
    return False, [f"Group not found: {group_id}"]


def reset_now(state: AppState, group_id: str, today: date) -> tuple[AppliedReset | None, list[str]]:
    """Manual reset requested by the user (never affects the score)."""
    group = find_group(state, group_id)
    if not group:
        return None, [f"Group not found: {group_id}"]
    return manual_reset(group, today), []


# ── Tasks ─────────────────────────────────────────────────────


def add_task(
    state: AppState, group_id: str, title: str, is_separator: bool = False
) -> tuple[CycleTask | None, list[str]]:
    """Append a task, or a separator header when ``is_separator`` is set."""
    group = find_group(state, group_id)
    if not group:
        return None, [f"Group not found: {group_id}"]
    errors = _validate_title(title)
    if errors:
        return None, errors
    task = CycleTask(id=new_id(), title=title.strip(), is_separator=bool(is_separator))
    group.tasks.append(task)
    return task, []


def rename_task(state: AppState, group_id: str, task_id: str, title: str) -> tuple[CycleTask | None, list[str]]:
    group = find_group(state, group_id)
    if not group:
        return None, [f"Group not found: {group_id}"]
    task = find_task(group, task_id)
    if not task:
        return None, [f"Task not found: {task_id}"]
    errors = _validate_title(title)
    if errors:
        return None, errors
    task.title = title.strip()
    return task, []


def toggle_task(state: AppState, group_id: str, task_id: str) -> tuple[CycleTask | None, list[str]]:
    """Flip a task's completion. Score and counters are left to the reset engine."""
    group = find_group(state, group_id)
    if not group:
        return None, [f"Group not found: {group_id}"]
    task = find_task(group, task_id)
    if not task:
        return None, [f"Task not found: {task_id}"]
    if task.is_separator:
        return None, ["Separators cannot be completed"]
    task.completed = not task.completed
    return task, []


def delete_task(state: AppState, group_id: str, task_id: str) -> tuple[bool, list[str]]:
    group = find_group(state, group_id)
    if not group:
        return False, [f"Group not found: {group_id}"]
    for i, t in enumerate(group.tasks):
        if t.id == task_id:
            group.tasks.pop(i)
            return True, []
    return False, [f"Task not found: {task_id}"]


def reorder_tasks(state: AppState, group_id: str, active_id: str, over_id: str) -> tuple[bool, list[str]]:
    """Move task ``active_id`` to the position currently held by ``over_id``."""
    group = find_group(state, group_id)
    if not group:
        return False, [f"Group not found: {group_id}"]
    ids = [t.id for t in group.tasks]
    if active_id not in ids or over_id not in ids:
        return False, ["Task not found"]
    task = group.tasks.pop(ids.index(active_id))
    group.tasks.insert(ids.index(over_id), task)
    return True, []
