"""Momentum score ledger and classification for GoalRitual."""

from __future__ import annotations

from goalritual.models import SCORE_MAX, SCORE_MIN


def clamp(score: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, score))


def apply(score: int, was_fully_completed: bool) -> int:
    """Score after one automatic reset: +1 for a fully completed cycle, -1 otherwise.

    Only automatic evaluation calls this. Manual resets and task toggles
    never move the score.
    """
    delta = 1 if was_fully_completed else -1
    return clamp(score + delta)


def classify(score: int) -> str:
    """Map a score to its presentation band.

    on_fire: >= 50
    strong: 20..49
    building: 1..19
    neutral: 0
    slipping: -1..-20
    struggling: -21..-50
    stalled: < -50
    """
    if score >= 50:
        return "on_fire"
    if score >= 20:
        return "strong"
    if score >= 1:
        return "building"
    if score == 0:
        return "neutral"
    if score >= -20:
        return "slipping"
    if score >= -50:
        return "struggling"
    return "stalled"


def trend(score: int) -> str:
    if score > 0:
        return "up"
    if score < 0:
        return "down"
    return "flat"


def format_score(score: int) -> str:
    sign = "+" if score > 0 else ""
    return f"{sign}{score} streak"
