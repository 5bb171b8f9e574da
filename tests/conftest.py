"""Shared test fixtures for GoalRitual tests."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path

import pytest
import yaml

from goalritual.models import AppState, CycleGroup, CycleTask, Goal, Milestone


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a config file."""
    root = tmp_path / "workspace"
    (root / "state").mkdir(parents=True)

    config = {
        "timezone": "UTC",
        "debounce_seconds": 0.05,
        "tick_seconds": 3600,
        "log_level": "DEBUG",
    }
    (root / "config.yaml").write_text(
        yaml.dump(config, default_flow_style=False), encoding="utf-8"
    )

    os.environ["GOALRITUAL_ROOT"] = str(root)
    yield root
    if "GOALRITUAL_ROOT" in os.environ:
        del os.environ["GOALRITUAL_ROOT"]


class FixedClock:
    """A settable clock for the Store."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(date(2024, 1, 8))


def make_tasks(*done: bool, separator: bool = True) -> list[CycleTask]:
    tasks = [CycleTask(id=f"t{i}", title=f"Task {i}", completed=d) for i, d in enumerate(done, 1)]
    if separator:
        tasks.insert(0, CycleTask(id="sep", title="Morning", is_separator=True))
    return tasks


@pytest.fixture
def sample_state() -> AppState:
    """One goal with a weekly Monday group, a daily group and a checkbox milestone."""
    weekly = CycleGroup(
        id="weekly",
        name="Weekly review",
        recurrence="weekly",
        cycle_start_day=1,
        start_date="2023-12-25",
        last_reset_date="2024-01-01",
        score=3,
        completion_count=2,
        tasks=make_tasks(True, True, True),
    )
    daily = CycleGroup(
        id="daily",
        name="Morning routine",
        recurrence="daily",
        start_date="2024-01-01",
        last_reset_date="2024-01-07",
        tasks=make_tasks(True, False, True),
    )
    milestone = Milestone(
        id="m1",
        title="Draft chapter",
        tasks=[
            CycleTask(id="mt1", title="Outline"),
            CycleTask(id="mt2", title="Write"),
        ],
    )
    goal = Goal(
        id="g1",
        title="Write a book",
        created_at="2023-12-20",
        milestones=[milestone],
        cycle_groups=[weekly, daily],
    )
    return AppState(goals=[goal])
