"""In-memory state holder for GoalRitual.

All business logic lives in reducers: plain functions that take the
AppState (plus arguments) and return ``(result, errors)``. The Store runs a
reducer against a working copy and only commits it when there are no errors
and something actually changed. Subscribers receive an immutable snapshot
after every commit; persistence is one such subscriber.
"""

from __future__ import annotations

import contextlib
import copy
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from goalritual import daily as daily_ops
from goalritual import reset
from goalritual.models import AppState
from goalritual.workspace import today_local

logger = logging.getLogger(__name__)

Reducer = Callable[..., tuple[Any, list[str]]]
Listener = Callable[[AppState], None]
Clock = Callable[[], date]


@dataclass
class TickResult:
    today: str
    resets: list[reset.AppliedReset] = field(default_factory=list)
    rollover: daily_ops.Rollover | None = None

    @property
    def changed(self) -> bool:
        return bool(self.resets) or self.rollover is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "today": self.today,
            "resets": [r.to_dict() for r in self.resets],
            "rollover": self.rollover.to_dict() if self.rollover else None,
        }


def run_tick(state: AppState, today: date) -> tuple[TickResult, list[str]]:
    """Catch up on everything that should have happened by ``today``."""
    result = TickResult(today=today.isoformat())
    result.resets = reset.evaluate(state.all_groups(), today)
    result.rollover = daily_ops.roll_to(state.daily, today.isoformat())
    return result, []


class Store:
    def __init__(self, state: AppState | None = None, clock: Clock | None = None) -> None:
        self._state = state if state is not None else AppState()
        self._clock = clock or today_local
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    @property
    def state(self) -> AppState:
        """A deep-copied snapshot; mutating it does not affect the store."""
        with self._lock:
            return copy.deepcopy(self._state)

    def today(self) -> date:
        return self._clock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, reducer: Reducer, *args: Any, **kwargs: Any) -> tuple[Any, list[str]]:
        """Run ``reducer`` and commit its changes unless it reported errors."""
        with self._lock:
            draft = copy.deepcopy(self._state)
            result, errors = reducer(draft, *args, **kwargs)
            if errors:
                logger.debug("%s rejected: %s", getattr(reducer, "__name__", reducer), "; ".join(errors))
                return result, errors
            if draft.to_dict() == self._state.to_dict():
                return result, errors
            self._state = draft
            snapshot = copy.deepcopy(draft)
            # the result may point into the committed state
            result = copy.deepcopy(result)
        self._notify(snapshot)
        return result, errors

    def tick(self) -> TickResult:
        """Apply due resets and the daily rollover for the clock's current day."""
        result, _ = self.dispatch(run_tick, self._clock())
        return result

    def replace(self, state: AppState) -> None:
        """Install a whole new state, e.g. one pulled from another session."""
        with self._lock:
            self._state = copy.deepcopy(state)
            snapshot = copy.deepcopy(state)
        self._notify(snapshot)

    def _notify(self, snapshot: AppState) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener %r failed", listener)
