"""HTTP behaviour of the stopwatch and character endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from godsaeng.config import get_settings
from godsaeng.db.base import Base
from godsaeng.db.session import dispose_engine, get_engine, session_scope
from godsaeng.main import app
from godsaeng.repositories.progression_ledgers import progression_ledgers
from godsaeng.study_routes import get_coordinator
from godsaeng.study_sessions import StorageFailureError, StudySessionCoordinator

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def client(tmp_path: Path, monkeypatch, clock: FakeClock):
    monkeypatch.setenv("GODSAENG_DATABASE_URL", f"sqlite:///{tmp_path / 'routes.db'}")
    get_settings.cache_clear()
    dispose_engine()
    Base.metadata.create_all(get_engine())
    coordinator = StudySessionCoordinator(clock=clock)
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()
    dispose_engine()
    get_settings.cache_clear()


def _headers(user_id: str = "user-1") -> dict[str, str]:
    return {"X-User-Id": user_id}


def _provision(user_id: str = "user-1", **kwargs: int) -> None:
    with session_scope() as session:
        progression_ledgers.provision(session, user_id, **kwargs)


def test_start_requires_user_header(client: TestClient) -> None:
    assert client.post("/api/study/start").status_code == 401
    assert client.post("/api/study/start", headers={"X-User-Id": "  "}).status_code == 401


def test_start_returns_created_session(client: TestClient) -> None:
    response = client.post("/api/study/start", headers=_headers())
    assert response.status_code == 201
    payload = response.json()
    assert payload["session_id"]
    assert payload["started_at"].startswith("2026-03-02T09:00:00")
    assert payload["message"]


def test_immediate_stop_is_below_threshold(client: TestClient, clock: FakeClock) -> None:
    _provision()
    session_id = client.post("/api/study/start", headers=_headers()).json()["session_id"]

    clock.advance(2)
    response = client.put(f"/api/study/stop/{session_id}", headers=_headers())

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "below_threshold"
    assert payload["duration_seconds"] == 0
    assert payload["experience_awarded"] == 0
    sessions = client.get("/api/study/sessions", headers=_headers()).json()["sessions"]
    assert sessions[0]["is_open"] is True


def test_stop_after_ninety_seconds_awards_experience(client: TestClient, clock: FakeClock) -> None:
    _provision(experience=10)
    session_id = client.post("/api/study/start", headers=_headers()).json()["session_id"]

    clock.advance(90)
    response = client.post(f"/api/study/stop/{session_id}", headers=_headers())

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "closed"
    assert payload["duration_seconds"] == 90
    assert payload["duration_minutes"] == 1.5
    assert payload["experience_awarded"] == 1
    assert payload["level"] == 1
    assert payload["experience"] == 11
    assert payload["level_up_occurred"] is False

    character = client.get("/api/character", headers=_headers()).json()
    assert character == {
        "user_id": "user-1",
        "level": 1,
        "experience": 11,
        "exp_required": 100,
        "exp_to_next_level": 89,
    }


def test_level_up_is_reported(client: TestClient, clock: FakeClock) -> None:
    _provision(experience=95)
    session_id = client.post("/api/study/start", headers=_headers()).json()["session_id"]

    clock.advance(10 * 60)
    payload = client.put(f"/api/study/stop/{session_id}", headers=_headers()).json()

    assert (payload["level"], payload["experience"], payload["level_up_occurred"]) == (2, 5, True)


def test_second_stop_is_not_found(client: TestClient, clock: FakeClock) -> None:
    _provision()
    session_id = client.post("/api/study/start", headers=_headers()).json()["session_id"]
    clock.advance(60)
    assert client.put(f"/api/study/stop/{session_id}", headers=_headers()).status_code == 200

    response = client.put(f"/api/study/stop/{session_id}", headers=_headers())
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "session_not_found"


def test_stop_by_other_user_is_not_found(client: TestClient, clock: FakeClock) -> None:
    session_id = client.post("/api/study/start", headers=_headers("owner")).json()["session_id"]
    clock.advance(60)
    response = client.put(f"/api/study/stop/{session_id}", headers=_headers("someone-else"))
    assert response.status_code == 404


def test_missing_ledger_is_server_error(client: TestClient, clock: FakeClock) -> None:
    session_id = client.post("/api/study/start", headers=_headers()).json()["session_id"]
    clock.advance(5 * 60)

    response = client.put(f"/api/study/stop/{session_id}", headers=_headers())

    assert response.status_code == 500
    assert response.json()["detail"]["code"] == "ledger_missing"
    sessions = client.get("/api/study/sessions", headers=_headers()).json()["sessions"]
    assert sessions[0]["is_open"] is True


def test_storage_failure_is_server_error(client: TestClient, monkeypatch) -> None:
    def fail(self, user_id: str, session_id: str):
        raise StorageFailureError("Could not close the study session.")

    monkeypatch.setattr(StudySessionCoordinator, "close_session", fail)
    response = client.put("/api/study/stop/anything", headers=_headers())
    assert response.status_code == 500
    assert response.json()["detail"]["code"] == "storage_failure"


def test_sessions_listing_is_scoped_and_limited(client: TestClient, clock: FakeClock) -> None:
    for _ in range(3):
        client.post("/api/study/start", headers=_headers())
        clock.advance(1)
    client.post("/api/study/start", headers=_headers("user-2"))

    sessions = client.get("/api/study/sessions", headers=_headers()).json()["sessions"]
    assert len(sessions) == 3
    assert len(client.get("/api/study/sessions?limit=2", headers=_headers()).json()["sessions"]) == 2
    assert client.get("/api/study/sessions?limit=0", headers=_headers()).status_code == 422


def test_character_without_ledger_is_not_found(client: TestClient) -> None:
    response = client.get("/api/character", headers=_headers())
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "ledger_missing"


def test_unconfigured_database_is_storage_failure(client: TestClient, monkeypatch) -> None:
    monkeypatch.delenv("GODSAENG_DATABASE_URL")
    get_settings.cache_clear()
    dispose_engine()

    response = client.post("/api/study/start", headers=_headers())
    assert response.status_code == 500
    assert response.json()["detail"]["code"] == "storage_failure"
