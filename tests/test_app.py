"""Tests for ui/app.py: JSON endpoints over a Store."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from goalritual.models import AppState
from goalritual.persistence import MemoryBackend
from goalritual.workspace import STATE_KEY
from ui.app import create_app


@pytest.fixture
def backend(sample_state):
    return MemoryBackend({STATE_KEY: sample_state.to_dict()})


@pytest.fixture
def client(workspace, clock, backend):
    app = create_app(root=workspace, clock=clock, backend=backend)
    with TestClient(app) as c:
        yield c


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_startup_catches_up(client):
    state = client.get("/api/state").json()
    groups = {g["id"]: g for g in state["goals"][0]["recurringTaskGroups"]}
    assert groups["weekly"]["lastResetDate"] == "2024-01-08"
    assert groups["weekly"]["score"] == 4
    assert groups["daily"]["score"] == -1


def test_tick_endpoint_idempotent(client):
    result = client.post("/api/tick").json()
    assert result["resets"] == []
    assert result["today"] == "2024-01-08"


def test_goal_crud(client):
    r = client.post("/api/goals", json={"title": "Learn piano"})
    assert r.status_code == 200
    goal_id = r.json()["id"]
    assert r.json()["createdAt"] == "2024-01-08"

    r = client.put(f"/api/goals/{goal_id}", json={"description": "scales daily"})
    assert r.json()["description"] == "scales daily"

    goals = client.get("/api/goals").json()["goals"]
    assert any(g["id"] == goal_id for g in goals)

    assert client.delete(f"/api/goals/{goal_id}").json()["ok"] is True
    assert client.delete(f"/api/goals/{goal_id}").status_code == 404


def test_create_goal_invalid(client):
    r = client.post("/api/goals", json={"title": ""})
    assert r.status_code == 400


def test_group_lifecycle(client):
    r = client.post("/api/goals/g1/groups", json={"name": "Gym", "recurrence": "weekly", "cycleStartDay": 3, "score": 50})
    assert r.status_code == 200
    group = r.json()
    assert group["score"] == 0

    r = client.post(f"/api/groups/{group['id']}/tasks", json={"title": "Squats"})
    task_id = r.json()["id"]
    r = client.post(f"/api/groups/{group['id']}/tasks/{task_id}/toggle")
    assert r.json()["completed"] is True

    view = client.get(f"/api/groups/{group['id']}").json()
    assert view["band"] == "neutral"
    assert view["next"]["date"] == "2024-01-10"
    assert view["next"]["label"] == "2 days left"

    r = client.post(f"/api/groups/{group['id']}/reset")
    assert r.json()["automatic"] is False
    assert r.json()["completionCount"] == 1
    assert r.json()["score"] == 0


def test_group_update_cannot_write_counters(client):
    r = client.put("/api/groups/weekly", json={"score": 90, "completionCount": 90, "name": "Review"})
    assert r.status_code == 200
    assert r.json()["name"] == "Review"
    assert r.json()["score"] == 4


def test_group_invalid_schedule(client):
    r = client.put("/api/groups/weekly", json={"cycleStartDay": 9})
    assert r.status_code == 400
    assert "cycleStartDay" in r.json()["detail"]


def test_unknown_group_is_404(client):
    assert client.get("/api/groups/nope").status_code == 404
    assert client.post("/api/groups/nope/reset").status_code == 404


def test_missing_field_is_400(client):
    assert client.post("/api/groups/daily/tasks", json={}).status_code == 400


def test_milestone_derived_completion(client):
    client.post("/api/milestones/m1/tasks/mt1/toggle")
    r = client.post("/api/milestones/m1/tasks/mt2/toggle")
    assert r.json()["completed"] is True
    state = client.get("/api/state").json()
    assert state["goals"][0]["milestones"][0]["completed"] is True

    r = client.post("/api/milestones/m1/toggle")
    assert r.status_code == 400


def test_daily_flow(client):
    r = client.post("/api/daily/todos", json={"title": "Buy milk"})
    todo_id = r.json()["id"]
    client.post(f"/api/daily/todos/{todo_id}/toggle")

    r = client.post("/api/daily/pinned", json={"milestoneId": "m1", "taskId": "mt1"})
    pinned_id = r.json()["id"]
    client.post(f"/api/daily/pinned/{pinned_id}/toggle")

    r = client.post("/api/daily/recurring", json={"title": "Stretch", "daysOfWeek": [1]})
    item_id = r.json()["id"]
    client.post(f"/api/daily/recurring/{item_id}/toggle")

    view = client.get("/api/daily").json()
    assert view["day"] == "2024-01-08"
    assert view["completed"] == 3
    assert view["total"] == 3
    assert view["totalCompleted"] == 3

    client.post(f"/api/daily/recurring/{item_id}/skip")
    assert client.get("/api/daily").json()["recurring"] == []


def test_daily_rollover_on_new_day(workspace, backend):
    clock_box = {"today": date(2024, 1, 8)}
    app = create_app(root=workspace, clock=lambda: clock_box["today"], backend=backend)
    with TestClient(app) as c:
        todo_id = c.post("/api/daily/todos", json={"title": "A"}).json()["id"]
        c.post(f"/api/daily/todos/{todo_id}/toggle")
        clock_box["today"] = date(2024, 1, 9)
        view = c.get("/api/daily").json()
        assert view["todos"] == []
        assert view["totalCompleted"] == 1


def test_shutdown_persists_state(workspace, clock, sample_state):
    backend = MemoryBackend({STATE_KEY: sample_state.to_dict()})
    app = create_app(root=workspace, clock=clock, backend=backend)
    with TestClient(app) as c:
        c.post("/api/goals", json={"title": "Persist me"})
    saved = AppState.from_dict(backend.get(STATE_KEY))
    assert any(g.title == "Persist me" for g in saved.goals)


def test_malformed_state_starts_empty(workspace, clock):
    backend = MemoryBackend({STATE_KEY: "corrupt"})
    app = create_app(root=workspace, clock=clock, backend=backend)
    with TestClient(app) as c:
        assert c.get("/api/state").json()["goals"] == []


def test_unreadable_group_dates_do_not_break_endpoints(workspace, clock, sample_state):
    doc = sample_state.to_dict()
    doc["goals"][0]["recurringTaskGroups"][0]["lastResetDate"] = "garbage"
    app = create_app(root=workspace, clock=clock, backend=MemoryBackend({STATE_KEY: doc}))
    with TestClient(app) as c:
        r = c.get("/api/groups/weekly")
        assert r.status_code == 200
        assert r.json()["lastResetDate"] is not None
        r = c.put("/api/groups/weekly", json={"startDate": "2024-02-01"})
        assert r.status_code == 200
        assert r.json()["lastResetDate"] == "2024-02-01"


def test_toggle_after_midnight_lands_in_new_cycle(client, clock):
    clock.today = date(2024, 1, 9)
    r = client.post("/api/groups/daily/tasks/t2/toggle")
    assert r.json()["completed"] is True
    group = client.get("/api/groups/daily").json()
    assert group["lastResetDate"] == "2024-01-09"
    assert group["score"] == -2
    assert [t["completed"] for t in group["tasks"] if not t.get("isSeparator")] == [False, True, False]


def test_rename_tasks_and_in_progress(client):
    r = client.put("/api/groups/daily/tasks/t1", json={"title": "Meditate"})
    assert r.status_code == 200
    assert r.json()["title"] == "Meditate"

    r = client.put("/api/milestones/m1/tasks/mt1", json={"title": "Detailed outline"})
    assert r.json()["title"] == "Detailed outline"
    assert client.put("/api/milestones/m1/tasks/mt1", json={"title": ""}).status_code == 400

    r = client.post("/api/milestones/m1/in-progress", json={"inProgress": True})
    assert r.status_code == 200
    assert r.json()["inProgress"] is True
    assert client.post("/api/milestones/nope/in-progress", json={"inProgress": True}).status_code == 404
