"""Goal containers: CRUD, lookup and progress."""

from __future__ import annotations

from datetime import date
from typing import Any

from goalritual.models import AppState, Goal, new_id


def validate_goal(goal: dict[str, Any]) -> list[str]:
    errors = []
    title = goal.get("title")
    if not isinstance(title, str) or not title.strip():
        errors.append("Missing required field: title")
    return errors


def find_goal(state: AppState, goal_id: str) -> Goal | None:
    for g in state.goals:
        if g.id == goal_id:
            return g
    return None


def create_goal(state: AppState, goal_data: dict[str, Any], today: date) -> tuple[Goal | None, list[str]]:
    """Create and add a new goal. Returns (goal, errors)."""
    errors = validate_goal(goal_data)
    if errors:
        return None, errors
    goal = Goal(
        id=new_id(),
        title=goal_data["title"].strip(),
        description=str(goal_data.get("description", "") or ""),
        created_at=today.isoformat(),
    )
    state.goals.append(goal)
    return goal, []


def update_goal(state: AppState, goal_id: str, updates: dict[str, Any]) -> tuple[Goal | None, list[str]]:
    goal = find_goal(state, goal_id)
    if not goal:
        return None, [f"Goal not found: {goal_id}"]
    merged = {"title": goal.title, **{k: v for k, v in updates.items() if k in ("title", "description")}}
    errors = validate_goal(merged)
    if errors:
        return None, errors
    goal.title = merged["title"].strip()
    if "description" in updates:
        goal.description = str(updates["description"] or "")
    if "archived" in updates:
        goal.archived = bool(updates["archived"])
    return goal, []


def delete_goal(state: AppState, goal_id: str) -> tuple[bool, list[str]]:
    for i, g in enumerate(state.goals):
        if g.id == goal_id:
            state.goals.pop(i)
            return True, []
    return False, [f"Goal not found: {goal_id}"]


def goal_progress(goal: Goal) -> float:
    """Percentage of milestones completed."""
    if not goal.milestones:
        return 0.0
    done = sum(1 for m in goal.milestones if m.completed)
    return done / len(goal.milestones) * 100


def is_goal_completed(goal: Goal) -> bool:
    return bool(goal.milestones) and all(m.completed for m in goal.milestones)
