"""Cycle rollover for recurring task groups.

The reset pipeline, per group:
1. Due check (skip unless the recurrence window has ended)
2. Judge the finished cycle before touching it
3. Move the momentum score (automatic resets only)
4. Bump the completion counter when every regular task was done
5. Clear regular tasks, leave separators alone
6. Advance the last-reset checkpoint to today

It is idempotent: once a group has been reset on a day, ``is_due`` stays
false for that day, so calling ``evaluate`` again changes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from goalritual import score as ledger
from goalritual.models import CycleGroup, all_regular_done
from goalritual.recurrence import is_due, parse_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedReset:
    group_id: str
    group_name: str
    reset_date: str
    was_fully_completed: bool
    previous_score: int
    score: int
    completion_count: int
    automatic: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "groupName": self.group_name,
            "resetDate": self.reset_date,
            "wasFullyCompleted": self.was_fully_completed,
            "previousScore": self.previous_score,
            "score": self.score,
            "completionCount": self.completion_count,
            "automatic": self.automatic,
        }


def _clear_cycle(group: CycleGroup, today: date) -> bool:
    """Clear regular tasks and advance the checkpoint. Returns the cycle verdict."""
    was_fully_completed = all_regular_done(group.tasks)
    if was_fully_completed:
        group.completion_count += 1
    for task in group.tasks:
        if not task.is_separator:
            task.completed = False
    last = parse_day(group.last_reset_date)
    if last is None or last < today:
        group.last_reset_date = today.isoformat()
    return was_fully_completed


def reset_group(group: CycleGroup, today: date) -> AppliedReset:
    """Apply one automatic reset to ``group`` without checking whether it is due."""
    previous = group.score
    was_fully_completed = all_regular_done(group.tasks)
    group.score = ledger.apply(group.score, was_fully_completed)
    _clear_cycle(group, today)
    logger.info(
        "Reset group %s (%s): complete=%s score %d -> %d count=%d",
        group.id, group.name, was_fully_completed, previous, group.score, group.completion_count,
    )
    return AppliedReset(
        group_id=group.id,
        group_name=group.name,
        reset_date=today.isoformat(),
        was_fully_completed=was_fully_completed,
        previous_score=previous,
        score=group.score,
        completion_count=group.completion_count,
        automatic=True,
    )


def evaluate(groups: list[CycleGroup], today: date) -> list[AppliedReset]:
    """Reset every due group in place. Returns the resets that were applied.

    Groups are independent; a group with unreadable dates is skipped and
    logged without affecting the others.
    """
    applied = []
    for group in groups:
        try:
            due = is_due(group, today)
        except ValueError as e:
            logger.warning("Skipping group %s with invalid dates: %s", group.id, e)
            continue
        if due:
            applied.append(reset_group(group, today))
    return applied


def manual_reset(group: CycleGroup, today: date) -> AppliedReset:
    """Clear the board on request. Counts a completed cycle but never moves the score."""
    was_fully_completed = _clear_cycle(group, today)
    logger.info(
        "Manual reset of group %s (%s): complete=%s count=%d",
        group.id, group.name, was_fully_completed, group.completion_count,
    )
    return AppliedReset(
        group_id=group.id,
        group_name=group.name,
        reset_date=today.isoformat(),
        was_fully_completed=was_fully_completed,
        previous_score=group.score,
        score=group.score,
        completion_count=group.completion_count,
        automatic=False,
    )
