from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request

from goalritual import daily as daily_ops
from goalritual import goals as goal_ops
from goalritual import groups as group_ops
from goalritual import milestones as milestone_ops
from goalritual import score as ledger
from goalritual.config import configure_logging
from goalritual.persistence import Backend, DebouncedWriter, FileBackend, load_state
from goalritual.recurrence import next_occurrence
from goalritual.store import Clock, Store
from goalritual.workspace import STATE_KEY, get_settings, today_local, workspace_root

logger = logging.getLogger(__name__)

# Server-owned group fields; update payloads never reach the reset engine's counters.
PROTECTED_GROUP_FIELDS = ("score", "completionCount", "lastResetDate")


# ── Helpers ───────────────────────────────────────────────────

def _store(request: Request) -> Store:
    """The app's Store, caught up to today so date-dependent actions land in the current cycle."""
    store: Store = request.app.state.store
    store.tick()
    return store


def _result(result: Any, errors: list[str]) -> Any:
    """Map reducer errors to HTTP errors: unknown ids are 404, the rest 400."""
    if errors:
        detail = "; ".join(errors)
        if any("not found" in e for e in errors):
            raise HTTPException(status_code=404, detail=detail)
        raise HTTPException(status_code=400, detail=detail)
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


def _group_view(group: Any, today: Any) -> dict[str, Any]:
    d = group.to_dict()
    d["band"] = ledger.classify(group.score)
    d["trend"] = ledger.trend(group.score)
    d["next"] = next_occurrence(group, today).to_dict()
    return d


def _require(payload: dict[str, Any], key: str) -> Any:
    if key not in payload:
        raise HTTPException(status_code=400, detail=f"Missing {key}")
    return payload[key]


# ── App factory ───────────────────────────────────────────────

def create_app(
    root: Path | None = None,
    clock: Clock | None = None,
    backend: Backend | None = None,
) -> FastAPI:
    """Build the HTTP surface around one Store.

    The state is loaded once at startup, ticked on a timer, and written back
    through a debounced writer.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        ws = root or workspace_root()
        settings = get_settings(ws)
        configure_logging(settings.log_level)

        be = backend if backend is not None else FileBackend(ws)
        store = Store(load_state(be, STATE_KEY), clock=clock or (lambda: today_local(ws)))
        writer = DebouncedWriter(store, be, STATE_KEY, delay=settings.debounce_seconds)
        store.tick()

        app.state.store = store
        app.state.writer = writer
        app.state.backend = be

        async def tick_loop() -> None:
            while True:
                await asyncio.sleep(settings.tick_seconds)
                try:
                    if isinstance(be, FileBackend):
                        be.check_for_changes(STATE_KEY)
                    store.tick()
                except Exception:
                    logger.exception("Periodic tick failed")

        task = asyncio.create_task(tick_loop())
        logger.info("GoalRitual API started (root=%s)", ws)
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            writer.close()
            logger.info("GoalRitual API stopped")

    app = FastAPI(title="GoalRitual API", version="0.1.0", lifespan=lifespan)
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    # ── State & tick ──────────────────────────────────────────

    @app.get("/api/state")
    def api_get_state(request: Request) -> dict[str, Any]:
        """Full state dump, caught up to today first."""
        store = _store(request)
        return store.state.to_dict()

    @app.post("/api/tick")
    def api_tick(request: Request) -> dict[str, Any]:
        return request.app.state.store.tick().to_dict()

    # ── Goals ─────────────────────────────────────────────────

    @app.get("/api/goals")
    def api_list_goals(request: Request) -> dict[str, Any]:
        state = _store(request).state
        return {
            "goals": [
                {**g.to_dict(), "progress": goal_ops.goal_progress(g), "isCompleted": goal_ops.is_goal_completed(g)}
                for g in state.goals
            ]
        }

    @app.post("/api/goals")
    def api_create_goal(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(goal_ops.create_goal, payload, store.today()))

    @app.put("/api/goals/{goal_id}")
    def api_update_goal(goal_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        return _result(*_store(request).dispatch(goal_ops.update_goal, goal_id, payload))

    @app.delete("/api/goals/{goal_id}")
    def api_delete_goal(goal_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(goal_ops.delete_goal, goal_id))
        return {"ok": True, "deleted": goal_id}

    # ── Cycle groups ──────────────────────────────────────────

    @app.post("/api/goals/{goal_id}/groups")
    def api_create_group(goal_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        store = _store(request)
        clean = {k: v for k, v in payload.items() if k not in PROTECTED_GROUP_FIELDS}
        return _result(*store.dispatch(group_ops.create_group, goal_id, clean, store.today()))

    @app.get("/api/groups/{group_id}")
    def api_get_group(group_id: str, request: Request) -> dict[str, Any]:
        store = _store(request)
        group = group_ops.find_group(store.state, group_id)
        if not group:
            raise HTTPException(status_code=404, detail=f"Group not found: {group_id}")
        return _group_view(group, store.today())

    @app.put("/api/groups/{group_id}")
    def api_update_group(group_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        clean = {k: v for k, v in payload.items() if k not in PROTECTED_GROUP_FIELDS}
        return _result(*_store(request).dispatch(group_ops.update_group, group_id, clean))

    @app.delete("/api/groups/{group_id}")
    def api_delete_group(group_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(group_ops.delete_group, group_id))
        return {"ok": True, "deleted": group_id}

    @app.post("/api/groups/{group_id}/reset")
    def api_reset_group(group_id: str, request: Request) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(group_ops.reset_now, group_id, store.today()))

    @app.post("/api/groups/{group_id}/tasks")
    def api_add_group_task(group_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        title = _require(payload, "title")
        return _result(*_store(request).dispatch(
            group_ops.add_task, group_id, title, bool(payload.get("isSeparator", False))
        ))

    @app.post("/api/groups/{group_id}/tasks/{task_id}/toggle")
    def api_toggle_group_task(group_id: str, task_id: str, request: Request) -> dict[str, Any]:
        return _result(*_store(request).dispatch(group_ops.toggle_task, group_id, task_id))

    @app.put("/api/groups/{group_id}/tasks/{task_id}")
    def api_rename_group_task(
        group_id: str, task_id: str, request: Request, payload: dict[str, Any] = Body(...)
    ) -> dict[str, Any]:
        return _result(*_store(request).dispatch(
            group_ops.rename_task, group_id, task_id, _require(payload, "title")
        ))

    @app.post("/api/groups/{group_id}/tasks/reorder")
    def api_reorder_group_tasks(group_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        _result(*_store(request).dispatch(
            group_ops.reorder_tasks, group_id, _require(payload, "activeId"), _require(payload, "overId")
        ))
        return {"ok": True}

    @app.delete("/api/groups/{group_id}/tasks/{task_id}")
    def api_delete_group_task(group_id: str, task_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(group_ops.delete_task, group_id, task_id))
        return {"ok": True, "deleted": task_id}

    # ── Milestones ────────────────────────────────────────────

    @app.post("/api/goals/{goal_id}/milestones")
    def api_add_milestone(goal_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        return _result(*_store(request).dispatch(milestone_ops.add_milestone, goal_id, payload))

    @app.put("/api/milestones/{milestone_id}")
    def api_update_milestone(milestone_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        return _result(*_store(request).dispatch(milestone_ops.update_milestone, milestone_id, payload))

    @app.delete("/api/milestones/{milestone_id}")
    def api_delete_milestone(milestone_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(milestone_ops.delete_milestone, milestone_id))
        return {"ok": True, "deleted": milestone_id}

    @app.post("/api/milestones/{milestone_id}/toggle")
    def api_toggle_milestone(milestone_id: str, request: Request) -> dict[str, Any]:
        return _result(*_store(request).dispatch(milestone_ops.toggle_milestone, milestone_id))

    @app.post("/api/milestones/{milestone_id}/in-progress")
    def api_set_in_progress(milestone_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        in_progress = bool(_require(payload, "inProgress"))
        return _result(*_store(request).dispatch(milestone_ops.set_in_progress, milestone_id, in_progress))

    @app.post("/api/milestones/{milestone_id}/tasks")
    def api_add_milestone_task(milestone_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        title = _require(payload, "title")
        return _result(*_store(request).dispatch(
            milestone_ops.add_task, milestone_id, title, bool(payload.get("isSeparator", False))
        ))

    @app.post("/api/milestones/{milestone_id}/tasks/{task_id}/toggle")
    def api_toggle_milestone_task(milestone_id: str, task_id: str, request: Request) -> dict[str, Any]:
        return _result(*_store(request).dispatch(milestone_ops.toggle_task, milestone_id, task_id))

    @app.put("/api/milestones/{milestone_id}/tasks/{task_id}")
    def api_rename_milestone_task(
        milestone_id: str, task_id: str, request: Request, payload: dict[str, Any] = Body(...)
    ) -> dict[str, Any]:
        return _result(*_store(request).dispatch(
            milestone_ops.rename_task, milestone_id, task_id, _require(payload, "title")
        ))

    @app.delete("/api/milestones/{milestone_id}/tasks/{task_id}")
    def api_delete_milestone_task(milestone_id: str, task_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(milestone_ops.delete_task, milestone_id, task_id))
        return {"ok": True, "deleted": task_id}

    # ── Daily list ────────────────────────────────────────────

    @app.get("/api/daily")
    def api_daily(request: Request) -> dict[str, Any]:
        store = _store(request)
        return daily_ops.today_view(store.state.daily, store.today().isoformat())

    @app.post("/api/daily/todos")
    def api_add_todo(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(daily_ops.add_todo, _require(payload, "title"), store.today()))

    @app.post("/api/daily/todos/{todo_id}/toggle")
    def api_toggle_todo(todo_id: str, request: Request) -> dict[str, Any]:
        return _result(*_store(request).dispatch(daily_ops.toggle_todo, todo_id))

    @app.delete("/api/daily/todos/{todo_id}")
    def api_delete_todo(todo_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(daily_ops.delete_todo, todo_id))
        return {"ok": True, "deleted": todo_id}

    @app.post("/api/daily/todos/clear-completed")
    def api_clear_completed(request: Request) -> dict[str, Any]:
        return {"cleared": _result(*_store(request).dispatch(daily_ops.clear_completed))}

    @app.post("/api/daily/pinned")
    def api_pin(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(
            daily_ops.pin_task, _require(payload, "milestoneId"), _require(payload, "taskId"), store.today()
        ))

    @app.post("/api/daily/pinned/{pinned_id}/toggle")
    def api_toggle_pinned(pinned_id: str, request: Request) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(daily_ops.toggle_pinned, pinned_id, store.today()))

    @app.delete("/api/daily/pinned/{pinned_id}")
    def api_unpin(pinned_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(daily_ops.unpin_task, pinned_id))
        return {"ok": True, "deleted": pinned_id}

    @app.post("/api/daily/recurring")
    def api_add_recurring(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(
            daily_ops.add_recurring, _require(payload, "title"), _require(payload, "daysOfWeek"), store.today()
        ))

    @app.post("/api/daily/recurring/{item_id}/toggle")
    def api_toggle_recurring(item_id: str, request: Request) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(daily_ops.toggle_recurring, item_id, store.today()))

    @app.post("/api/daily/recurring/{item_id}/skip")
    def api_skip_recurring(item_id: str, request: Request) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(daily_ops.skip_recurring, item_id, store.today()))

    @app.post("/api/daily/recurring/{item_id}/unskip")
    def api_unskip_recurring(item_id: str, request: Request) -> dict[str, Any]:
        store = _store(request)
        return _result(*store.dispatch(daily_ops.unskip_recurring, item_id, store.today()))

    @app.delete("/api/daily/recurring/{item_id}")
    def api_delete_recurring(item_id: str, request: Request) -> dict[str, Any]:
        _result(*_store(request).dispatch(daily_ops.delete_recurring, item_id))
        return {"ok": True, "deleted": item_id}


app = create_app()
