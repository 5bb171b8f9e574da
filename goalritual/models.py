"""Typed dataclasses for the GoalRitual data model.

All models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any

logger = logging.getLogger(__name__)


RECURRENCES = ("daily", "weekly", "monthly")
DISPLAY_STYLES = ("checkbox", "bullet")

SCORE_MIN = -100
SCORE_MAX = 100


def new_id() -> str:
    return str(uuid.uuid4())


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _optional_day(value: Any, name: str) -> str | None:
    """Normalise a stored date to YYYY-MM-DD; unreadable values become None."""
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        logger.warning("Dropping unreadable %s %r", name, value)
        return None


# ── Tasks ─────────────────────────────────────────────────────


@dataclass
class CycleTask:
    """A task inside a cycle group or a milestone.

    Separators are display-only headers and never count toward completion.
    """

    id: str = ""
    title: str = ""
    completed: bool = False
    is_separator: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CycleTask:
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            completed=bool(d.get("completed", False)),
            is_separator=bool(d.get("isSeparator", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "title": self.title, "completed": self.completed}
        if self.is_separator:
            d["isSeparator"] = True
        return d


def regular_tasks(tasks: list[CycleTask]) -> list[CycleTask]:
    return [t for t in tasks if not t.is_separator]


def all_regular_done(tasks: list[CycleTask]) -> bool:
    """True when there is at least one regular task and every one is completed."""
    regular = regular_tasks(tasks)
    return len(regular) > 0 and all(t.completed for t in regular)


# ── Cycle groups ──────────────────────────────────────────────


@dataclass
class CycleGroup:
    id: str = ""
    name: str = ""
    recurrence: str = "daily"
    cycle_start_day: int | None = None
    start_date: str | None = None  # ISO date
    last_reset_date: str | None = None  # ISO date
    score: int = 0
    completion_count: int = 0
    tasks: list[CycleTask] = field(default_factory=list)

    @property
    def regular_tasks(self) -> list[CycleTask]:
        return regular_tasks(self.tasks)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CycleGroup:
        score = int(d.get("score", 0) or 0)
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            recurrence=str(d.get("recurrence", "daily")),
            cycle_start_day=_optional_int(d.get("cycleStartDay")),
            start_date=_optional_day(d.get("startDate"), "startDate"),
            last_reset_date=_optional_day(d.get("lastResetDate"), "lastResetDate"),
            score=max(SCORE_MIN, min(SCORE_MAX, score)),
            completion_count=max(0, int(d.get("completionCount", 0) or 0)),
            tasks=[CycleTask.from_dict(t) for t in (d.get("tasks") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "recurrence": self.recurrence,
            "startDate": self.start_date,
            "lastResetDate": self.last_reset_date,
            "score": self.score,
            "completionCount": self.completion_count,
            "tasks": [t.to_dict() for t in self.tasks],
        }
        if self.cycle_start_day is not None:
            d["cycleStartDay"] = self.cycle_start_day
        return d


# ── Milestones & goals ────────────────────────────────────────


@dataclass
class Milestone:
    id: str = ""
    title: str = ""
    description: str = ""
    target_date: str = ""
    completed: bool = False
    in_progress: bool = False
    archived: bool = False
    task_display_style: str = "checkbox"
    tasks: list[CycleTask] = field(default_factory=list)

    @property
    def regular_tasks(self) -> list[CycleTask]:
        return regular_tasks(self.tasks)

    @property
    def is_derived(self) -> bool:
        """Completion follows the tasks instead of being a manual flag."""
        return self.task_display_style != "bullet" and len(self.regular_tasks) > 0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Milestone:
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            description=str(d.get("description", "") or ""),
            target_date=str(d.get("targetDate", "") or ""),
            completed=bool(d.get("completed", False)),
            in_progress=bool(d.get("inProgress", False)),
            archived=bool(d.get("archived", False)),
            task_display_style=str(d.get("taskDisplayStyle") or "checkbox"),
            tasks=[CycleTask.from_dict(t) for t in (d.get("tasks") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "targetDate": self.target_date,
            "completed": self.completed,
            "inProgress": self.in_progress,
            "archived": self.archived,
            "taskDisplayStyle": self.task_display_style,
            "tasks": [t.to_dict() for t in self.tasks],
        }


@dataclass
class Goal:
    id: str = ""
    title: str = ""
    description: str = ""
    created_at: str = ""
    archived: bool = False
    milestones: list[Milestone] = field(default_factory=list)
    cycle_groups: list[CycleGroup] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Goal:
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            description=str(d.get("description", "") or ""),
            created_at=str(d.get("createdAt", "") or ""),
            archived=bool(d.get("archived", False)),
            milestones=[Milestone.from_dict(m) for m in (d.get("milestones") or [])],
            cycle_groups=[CycleGroup.from_dict(g) for g in (d.get("recurringTaskGroups") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "createdAt": self.created_at,
            "archived": self.archived,
            "milestones": [m.to_dict() for m in self.milestones],
            "recurringTaskGroups": [g.to_dict() for g in self.cycle_groups],
        }


# ── Daily scope ───────────────────────────────────────────────


@dataclass
class DailyTodo:
    id: str = ""
    title: str = ""
    completed: bool = False
    created_at: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyTodo:
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            completed=bool(d.get("completed", False)),
            created_at=str(d.get("createdAt", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "createdAt": self.created_at,
        }


@dataclass
class PinnedTask:
    """A milestone task pinned to today's list."""

    id: str = ""
    goal_id: str = ""
    milestone_id: str = ""
    task_id: str = ""
    title: str = ""
    pinned_at: str = ""
    completed_date: str | None = None  # local day key it was last completed

    @property
    def completed(self) -> bool:
        return self.completed_date is not None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> PinnedTask:
        return cls(
            id=str(d.get("id", "")),
            goal_id=str(d.get("goalId", "")),
            milestone_id=str(d.get("milestoneId", "")),
            task_id=str(d.get("taskId", "")),
            title=str(d.get("taskTitle", d.get("title", ""))),
            pinned_at=str(d.get("pinnedAt", "") or ""),
            completed_date=d.get("completedDate") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "goalId": self.goal_id,
            "milestoneId": self.milestone_id,
            "taskId": self.task_id,
            "taskTitle": self.title,
            "pinnedAt": self.pinned_at,
            "completedDate": self.completed_date,
        }


@dataclass
class RecurringDailyTask:
    id: str = ""
    title: str = ""
    days_of_week: list[int] = field(default_factory=list)  # 0 = Sunday
    completed_dates: list[str] = field(default_factory=list)
    skipped_dates: list[str] = field(default_factory=list)
    created_at: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RecurringDailyTask:
        days = d.get("daysOfWeek") or []
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            days_of_week=sorted({int(x) for x in days}) if isinstance(days, list) else [],
            completed_dates=_str_list(d.get("completedDates")),
            skipped_dates=_str_list(d.get("skippedDates")),
            created_at=str(d.get("createdAt", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "daysOfWeek": list(self.days_of_week),
            "completedDates": list(self.completed_dates),
            "skippedDates": list(self.skipped_dates),
            "createdAt": self.created_at,
        }


@dataclass
class DailyState:
    todos: list[DailyTodo] = field(default_factory=list)
    pinned: list[PinnedTask] = field(default_factory=list)
    recurring: list[RecurringDailyTask] = field(default_factory=list)
    last_rollover: str | None = None
    total_completed: int = 0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyState:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            todos=[DailyTodo.from_dict(t) for t in (d.get("todos") or [])],
            pinned=[PinnedTask.from_dict(p) for p in (d.get("pinned") or [])],
            recurring=[RecurringDailyTask.from_dict(r) for r in (d.get("recurring") or [])],
            last_rollover=_optional_day(d.get("lastRollover"), "lastRollover"),
            total_completed=max(0, int(d.get("totalCompleted", 0) or 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "todos": [t.to_dict() for t in self.todos],
            "pinned": [p.to_dict() for p in self.pinned],
            "recurring": [r.to_dict() for r in self.recurring],
            "lastRollover": self.last_rollover,
            "totalCompleted": self.total_completed,
        }


# ── App state ─────────────────────────────────────────────────


STATE_VERSION = 1


@dataclass
class AppState:
    goals: list[Goal] = field(default_factory=list)
    daily: DailyState = field(default_factory=DailyState)
    version: int = STATE_VERSION

    def all_groups(self) -> list[CycleGroup]:
        return [g for goal in self.goals for g in goal.cycle_groups]

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> AppState:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            goals=[Goal.from_dict(g) for g in (d.get("goals") or [])],
            daily=DailyState.from_dict(d.get("daily") or {}),
            version=int(d.get("version", STATE_VERSION)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "goals": [g.to_dict() for g in self.goals],
            "daily": self.daily.to_dict(),
        }
