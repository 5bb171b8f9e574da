"""Milestones and derived completion.

A checkbox-style milestone with at least one regular task is complete exactly
when all of its regular tasks are. ``propagate`` restores that after every
task mutation; bullet-style milestones keep a manual completion flag.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from goalritual.goals import find_goal
from goalritual.models import DISPLAY_STYLES, AppState, CycleTask, Goal, Milestone, new_id


# ── Derived completion ────────────────────────────────────────


def propagate(milestone: Milestone) -> Milestone:
    """Recompute the completion flag of ``milestone`` from its tasks.

    Returns a new Milestone when the flag changes, otherwise the same object.
    Never touches the tasks themselves.
    """
    if not milestone.is_derived:
        return milestone
    all_done = all(t.completed for t in milestone.regular_tasks)
    if all_done and not milestone.completed:
        return replace(milestone, completed=True, in_progress=False)
    if not all_done and milestone.completed:
        return replace(milestone, completed=False)
    return milestone


def _commit(goal: Goal, milestone: Milestone) -> Milestone:
    """Run propagation once for a mutated milestone and store the result."""
    updated = propagate(milestone)
    for i, m in enumerate(goal.milestones):
        if m.id == milestone.id:
            goal.milestones[i] = updated
            break
    return updated


# ── Validation & lookup ───────────────────────────────────────


def validate_milestone(milestone: dict[str, Any]) -> list[str]:
    errors = []
    title = milestone.get("title")
    if not isinstance(title, str) or not title.strip():
        errors.append("Missing required field: title")
    style = milestone.get("taskDisplayStyle", "checkbox")
    if style not in DISPLAY_STYLES:
        errors.append(f"Invalid taskDisplayStyle: {style}")
    return errors


def find_milestone(state: AppState, milestone_id: str) -> tuple[Goal | None, Milestone | None]:
    for goal in state.goals:
        for m in goal.milestones:
            if m.id == milestone_id:
                return goal, m
    return None, None


def _find_task(milestone: Milestone, task_id: str) -> CycleTask | None:
    for t in milestone.tasks:
        if t.id == task_id:
            return t
    return None


# ── Milestone CRUD ────────────────────────────────────────────


def add_milestone(
    state: AppState, goal_id: str, milestone_data: dict[str, Any]
) -> tuple[Milestone | None, list[str]]:
    goal = find_goal(state, goal_id)
    if not goal:
        return None, [f"Goal not found: {goal_id}"]
    errors = validate_milestone(milestone_data)
    if errors:
        return None, errors
    milestone = Milestone(
        id=new_id(),
        title=milestone_data["title"].strip(),
        description=str(milestone_data.get("description", "") or ""),
        target_date=str(milestone_data.get("targetDate", "") or ""),
        task_display_style=milestone_data.get("taskDisplayStyle", "checkbox"),
    )
    goal.milestones.append(milestone)
    return milestone, []


def update_milestone(
    state: AppState, milestone_id: str, updates: dict[str, Any]
) -> tuple[Milestone | None, list[str]]:
    """Edit title, description, target date, archive flag or display style."""
    goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return None, [f"Milestone not found: {milestone_id}"]
    merged = {"title": milestone.title, "taskDisplayStyle": milestone.task_display_style}
    merged.update({k: v for k, v in updates.items() if k in ("title", "taskDisplayStyle")})
    errors = validate_milestone(merged)
    if errors:
        return None, errors

    milestone.title = merged["title"].strip()
    milestone.task_display_style = merged["taskDisplayStyle"]
    if "description" in updates:
        milestone.description = str(updates["description"] or "")
    if "targetDate" in updates:
        milestone.target_date = str(updates["targetDate"] or "")
    if "archived" in updates:
        milestone.archived = bool(updates["archived"])
    return _commit(goal, milestone), []


def delete_milestone(state: AppState, milestone_id: str) -> tuple[bool, list[str]]:
    goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return False, [f"Milestone not found: {milestone_id}"]
    goal.milestones = [m for m in goal.milestones if m.id != milestone_id]
    return True, []


def toggle_milestone(state: AppState, milestone_id: str) -> tuple[Milestone | None, list[str]]:
    """Manually flip completion. Only allowed where completion is not derived."""
    goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return None, [f"Milestone not found: {milestone_id}"]
    if milestone.is_derived:
        return None, ["Milestone completion follows its tasks"]
    milestone.completed = not milestone.completed
    if milestone.completed:
        milestone.in_progress = False
    return milestone, []


def set_in_progress(state: AppState, milestone_id: str, in_progress: bool) -> tuple[Milestone | None, list[str]]:
    goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return None, [f"Milestone not found: {milestone_id}"]
    if in_progress and milestone.completed:
        return None, ["Completed milestones cannot be in progress"]
    milestone.in_progress = bool(in_progress)
    return milestone, []


# ── Milestone tasks ───────────────────────────────────────────


def add_task(
    state: AppState, milestone_id: str, title: str, is_separator: bool = False
) -> tuple[CycleTask | None, list[str]]:
    goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return None, [f"Milestone not found: {milestone_id}"]
    if not isinstance(title, str) or not title.strip():
        return None, ["Task title must not be empty"]
    task = CycleTask(id=new_id(), title=title.strip(), is_separator=bool(is_separator))
    milestone.tasks.append(task)
    _commit(goal, milestone)
    return task, []


def set_task_completed(
    state: AppState, milestone_id: str, task_id: str, completed: bool
) -> tuple[CycleTask | None, list[str]]:
    goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return None, [f"Milestone not found: {milestone_id}"]
    task = _find_task(milestone, task_id)
    if not task:
        return None, [f"Task not found: {task_id}"]
    if task.is_separator:
        return None, ["Separators cannot be completed"]
    task.completed = bool(completed)
    _commit(goal, milestone)
    return task, []


def toggle_task(state: AppState, milestone_id: str, task_id: str) -> tuple[CycleTask | None, list[str]]:
    _goal, milestone = find_milestone(state, milestone_id)
    task = _find_task(milestone, task_id) if milestone else None
    current = task.completed if task else False
    return set_task_completed(state, milestone_id, task_id, not current)


def rename_task(state: AppState, milestone_id: str, task_id: str, title: str) -> tuple[CycleTask | None, list[str]]:
    _goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return None, [f"Milestone not found: {milestone_id}"]
    task = _find_task(milestone, task_id)
    if not task:
        return None, [f"Task not found: {task_id}"]
    if not isinstance(title, str) or not title.strip():
        return None, ["Task title must not be empty"]
    task.title = title.strip()
    return task, []


def delete_task(state: AppState, milestone_id: str, task_id: str) -> tuple[bool, list[str]]:
    goal, milestone = find_milestone(state, milestone_id)
    if not milestone:
        return False, [f"Milestone not found: {milestone_id}"]
    if not _find_task(milestone, task_id):
        return False, [f"Task not found: {task_id}"]
    milestone.tasks = [t for t in milestone.tasks if t.id != task_id]
    _commit(goal, milestone)
    return True, []
