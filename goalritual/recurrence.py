"""Recurrence clock for cycle groups.

Answers "is a reset due?" and "when is the next reset?" from local calendar
dates and the group's persisted checkpoints. Everything here is pure: the
caller supplies ``today``.

Weekday anchors use 0 = Sunday .. 6 = Saturday.
"""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from goalritual.models import RECURRENCES, CycleGroup


# ── Constants ─────────────────────────────────────────────────

ROLLING_WEEK_DAYS = 7
ROLLING_MONTH_DAYS = 30
DAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


@dataclass(frozen=True)
class Occurrence:
    date: date
    days_until: int

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "daysUntil": self.days_until,
            "label": describe_next(self),
        }


# ── Date helpers ──────────────────────────────────────────────


def parse_day(value: str | date | None) -> date | None:
    """Parse an ISO date or datetime string down to its calendar date."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def weekday_sun0(d: date) -> int:
    """Weekday with Sunday as 0."""
    return d.isoweekday() % 7


def days_in_month(d: date) -> int:
    return monthrange(d.year, d.month)[1]


def clamped_day(anchor: int, d: date) -> date:
    """The anchor day-of-month within d's month, clamped to the month length."""
    return d.replace(day=min(anchor, days_in_month(d)))


def days_between(start: date, end: date) -> int:
    return (end - start).days


# ── Validation ────────────────────────────────────────────────


def validate_schedule(recurrence: str, cycle_start_day: int | None) -> list[str]:
    """Validate a recurrence/anchor pair and return list of errors (empty if valid)."""
    errors = []
    if recurrence not in RECURRENCES:
        errors.append(f"Invalid recurrence: {recurrence}")
        return errors
    if cycle_start_day is None:
        return errors
    if isinstance(cycle_start_day, bool) or not isinstance(cycle_start_day, int):
        errors.append("cycleStartDay must be an integer")
    elif recurrence == "daily":
        errors.append("cycleStartDay is not allowed for daily recurrence")
    elif recurrence == "weekly" and not 0 <= cycle_start_day <= 6:
        errors.append("cycleStartDay must be 0-6 (Sunday-Saturday) for weekly recurrence")
    elif recurrence == "monthly" and not 1 <= cycle_start_day <= 31:
        errors.append("cycleStartDay must be 1-31 for monthly recurrence")
    return errors


# ── Due check ─────────────────────────────────────────────────


def _checkpoint(group: CycleGroup) -> date | None:
    return parse_day(group.last_reset_date) or parse_day(group.start_date)


def elapsed_days(group: CycleGroup, today: date) -> int:
    """Days since the last reset, never negative (clock skew counts as zero)."""
    last = _checkpoint(group)
    if last is None:
        return 0
    return max(0, days_between(last, today))


def is_due(group: CycleGroup, today: date) -> bool:
    """Whether the group's current cycle has ended as of ``today``."""
    start = parse_day(group.start_date)
    if start is not None and start > today:
        return False
    if _checkpoint(group) is None:
        return False

    elapsed = elapsed_days(group, today)
    anchor = group.cycle_start_day

    if group.recurrence == "daily":
        return elapsed >= 1
    if group.recurrence == "weekly":
        if anchor is not None:
            return weekday_sun0(today) == anchor and elapsed >= 1
        return elapsed >= ROLLING_WEEK_DAYS
    if group.recurrence == "monthly":
        if anchor is not None:
            return today.day == clamped_day(anchor, today).day and elapsed >= 1
        return elapsed >= ROLLING_MONTH_DAYS
    return False


# ── Next occurrence ───────────────────────────────────────────


def next_occurrence(group: CycleGroup, today: date) -> Occurrence:
    """Compute the next reset date under the same rules as ``is_due``."""
    reference = today
    start = parse_day(group.start_date)
    if start is not None and start > today:
        reference = start
    last = _checkpoint(group) or reference
    anchor = group.cycle_start_day

    if group.recurrence == "weekly":
        if anchor is not None:
            ahead = (anchor - weekday_sun0(reference)) % 7 or 7
            nxt = reference + timedelta(days=ahead)
        else:
            nxt = last + timedelta(days=ROLLING_WEEK_DAYS)
    elif group.recurrence == "monthly":
        if anchor is not None:
            nxt = clamped_day(anchor, reference)
            if reference.day >= nxt.day:
                nxt = clamped_day(anchor, reference.replace(day=1) + relativedelta(months=1))
        else:
            nxt = last + timedelta(days=ROLLING_MONTH_DAYS)
    else:
        nxt = reference + timedelta(days=1)

    # An overdue rolling window resets at the next evaluation, i.e. today.
    nxt = max(nxt, reference)
    return Occurrence(date=nxt, days_until=max(0, days_between(today, nxt)))


def describe_next(occurrence: Occurrence) -> str:
    if occurrence.days_until == 0:
        return "Today"
    if occurrence.days_until == 1:
        return "Tomorrow"
    return f"{occurrence.days_until} days left"
