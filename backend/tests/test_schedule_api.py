from __future__ import annotations

import logging
from typing import List
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_ai_client
from app.core.config import settings
from app.core.errors import ExternalServiceError, PersistenceError
from app.core.logging import RequestContextFilter
from app.db.base import Base
from app.db.deps import get_db
from app.db.models.role_model import RoleModel
from app.db.models.user import User
from app.db.models.user_schedule import UserSchedule
from app.main import app
from app.services.schedule_store import ScheduleStore

PREFIX = settings.api_prefix

AI_COMPLETION = """EXPLANATION:
I moved your workout to the early morning and protected a focused work block, matching the role model's love of early starts.

SCHEDULE:
[
  {"id": "1", "time": "5:30 AM", "activity": "Morning exercise", "category": "health"},
  {"id": "2", "time": "8:00 AM", "activity": "Deep Work: Product Strategy", "category": "work", "color": "#3B82F6"},
  {"id": "3", "time": "10:00 PM", "activity": "Sleep", "category": "sleep"}
]"""


class FakeAIClient:
    def __init__(self, completion: str = AI_COMPLETION, error: Exception | None = None):
        self.completion = completion
        self.error = error
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.completion


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fake_ai = FakeAIClient()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: fake_ai
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal, fake_ai
    app.dependency_overrides.clear()


def _seed(session_factory, philosophy: str | None = "Rise before the sun and guard deep work.") -> tuple[UUID, UUID]:
    user_id, role_model_id = uuid4(), uuid4()
    with session_factory() as db:
        db.add(User(id=user_id, email=f"{user_id}@example.com", name="Sam"))
        db.add(RoleModel(id=role_model_id, name="Tim Cook", philosophy=philosophy))
        db.commit()
    return user_id, role_model_id


def _current_schedule() -> list[dict]:
    return [
        {"id": "1", "time": "7:00 AM", "activity": "Wake up", "category": "personal"},
        {"id": "2", "time": "9:00 AM", "activity": "Work", "category": "work"},
        {"id": "3", "time": "11:00 PM", "activity": "Sleep", "category": "sleep"},
    ]


def _customize_payload(user_id: UUID, role_model_id: UUID, **overrides) -> dict:
    payload = {
        "userId": str(user_id),
        "roleModelId": str(role_model_id),
        "currentSchedule": _current_schedule(),
        "userQuery": "Fit a workout in before work",
    }
    payload.update(overrides)
    return payload


def _confirm_payload(user_id: UUID, role_model_id: UUID, **overrides) -> dict:
    payload = {
        "userId": str(user_id),
        "roleModelId": str(role_model_id),
        "roleModelName": "Tim Cook",
        "schedule": _current_schedule(),
    }
    payload.update(overrides)
    return payload


def test_customize_returns_modified_and_original_schedule(client):
    test_client, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory)

    response = test_client.post(f"{PREFIX}/customize-schedule", json=_customize_payload(user_id, role_model_id))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["message"].startswith("I moved your workout")
    assert [slot["activity"] for slot in data["modifiedSchedule"]] == [
        "Morning exercise",
        "Deep Work: Product Strategy",
        "Sleep",
    ]
    assert data["modifiedSchedule"][0]["color"] == "#10B981"
    assert data["originalSchedule"] == [{**slot, "color": None} for slot in _current_schedule()]

    prompt = fake_ai.prompts[0]
    assert "Rise before the sun and guard deep work." in prompt
    assert "Fit a workout in before work" in prompt
    assert "2. 9:00 AM: Work (work)" in prompt


def test_customize_without_philosophy_uses_default(client):
    test_client, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory, philosophy=None)

    response = test_client.post(f"{PREFIX}/customize-schedule", json=_customize_payload(user_id, role_model_id))

    assert response.status_code == 200
    assert "Focus on balance, productivity, and well-being." in fake_ai.prompts[0]


@pytest.mark.parametrize(
    "overrides",
    [
        {"userQuery": ""},
        {"userQuery": "   "},
        {"currentSchedule": []},
        {"currentSchedule": "not-a-list"},
    ],
)
def test_customize_rejects_invalid_input(client, overrides):
    test_client, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory)

    response = test_client.post(
        f"{PREFIX}/customize-schedule",
        json=_customize_payload(user_id, role_model_id, **overrides),
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"]
    assert fake_ai.prompts == []


def test_customize_missing_field_returns_400(client):
    test_client, _, _ = client

    response = test_client.post(f"{PREFIX}/customize-schedule", json={"userQuery": "hi"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_customize_surfaces_upstream_error(client):
    test_client, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory)
    fake_ai.error = ExternalServiceError("AI service error (503): The model is overloaded.", upstream_status=503)

    response = test_client.post(f"{PREFIX}/customize-schedule", json=_customize_payload(user_id, role_model_id))

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "AI service error (503): The model is overloaded."}


def test_customize_unparseable_completion_returns_500(client):
    test_client, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory)
    fake_ai.completion = "Sorry, I can't help with that."

    response = test_client.post(f"{PREFIX}/customize-schedule", json=_customize_payload(user_id, role_model_id))

    assert response.status_code == 500
    error = response.json()["error"]
    assert error.startswith("Could not find schedule in AI response")
    assert "rephrasing" in error


def test_confirm_then_read_active_schedule(client):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)

    response = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["tasksCreated"] == 3
    assert "Tim Cook" in data["message"]

    active = test_client.get(f"{PREFIX}/active-schedule/{user_id}").json()["data"]
    assert active["userScheduleId"] == data["userScheduleId"]
    assert active["status"] == "active"
    assert active["totalScore"] == 0
    assert [task["displayOrder"] for task in active["tasks"]] == [1, 2, 3]
    assert [task["startTime"] for task in active["tasks"]] == ["07:00:00", "09:00:00", "23:00:00"]
    assert [task["endTime"] for task in active["tasks"]] == ["08:00:00", "13:00:00", "05:00:00"]
    assert [task["category"] for task in active["tasks"]] == ["Personal", "Work", "Sleep"]


def test_second_confirm_returns_conflict(client):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)

    first = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))
    second = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["success"] is False
    assert "already have an active schedule" in second.json()["error"]
    with session_factory() as db:
        assert db.query(UserSchedule).count() == 1


def test_confirm_unknown_role_model_returns_400(client):
    test_client, session_factory, _ = client
    user_id, _ = _seed(session_factory)

    response = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, uuid4()))

    assert response.status_code == 400
    assert response.json()["error"] == "Role model not found"


@pytest.mark.parametrize("missing", ["userId", "roleModelId", "roleModelName", "schedule"])
def test_confirm_missing_field_returns_400(client, missing):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)
    payload = _confirm_payload(user_id, role_model_id)
    payload.pop(missing)

    response = test_client.post(f"{PREFIX}/confirm-schedule", json=payload)

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_confirm_empty_schedule_returns_400(client):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)

    response = test_client.post(
        f"{PREFIX}/confirm-schedule",
        json=_confirm_payload(user_id, role_model_id, schedule=[]),
    )

    assert response.status_code == 400


def test_confirm_task_failure_rolls_back(client, monkeypatch):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)

    def failing_create_tasks(self, schedule_id, rows):
        raise PersistenceError("Failed to create tasks: IntegrityError")

    monkeypatch.setattr(ScheduleStore, "create_tasks", failing_create_tasks)

    response = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to confirm schedule: Failed to create tasks: IntegrityError"
    assert test_client.get(f"{PREFIX}/active-schedule/{user_id}").json() == {"success": True, "data": None}
    with session_factory() as db:
        assert db.query(UserSchedule).count() == 0


def test_stop_schedule_frees_user_for_new_confirm(client):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)
    confirmed = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))
    schedule_id = confirmed.json()["data"]["userScheduleId"]

    stopped = test_client.post(f"{PREFIX}/stop-schedule", json={"userId": str(user_id)})

    assert stopped.status_code == 200
    assert stopped.json()["data"] == {"userScheduleId": schedule_id, "status": "completed"}
    assert test_client.get(f"{PREFIX}/active-schedule/{user_id}").json()["data"] is None

    again = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))
    assert again.status_code == 200
    assert again.json()["data"]["userScheduleId"] != schedule_id


def test_stop_without_active_schedule_returns_400(client):
    test_client, session_factory, _ = client
    user_id, _ = _seed(session_factory)

    response = test_client.post(f"{PREFIX}/stop-schedule", json={"userId": str(user_id)})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No active schedule to stop"}


def test_active_schedule_for_unknown_user_is_null(client):
    test_client, _, _ = client

    response = test_client.get(f"{PREFIX}/active-schedule/{uuid4()}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": None}


def test_request_id_echoed_on_schedule_routes(client):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)

    response = test_client.post(
        f"{PREFIX}/customize-schedule",
        headers={"X-Request-Id": "req-schedule-1"},
        json=_customize_payload(user_id, role_model_id),
    )

    assert response.headers.get("X-Request-Id") == "req-schedule-1"


def test_customize_database_read_failure_returns_500_envelope(client, monkeypatch):
    test_client, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory)

    def failing_get(self, entity, ident, **kwargs):
        raise OperationalError("SELECT role_models", {}, Exception("connection lost"))

    monkeypatch.setattr(Session, "get", failing_get)

    response = test_client.post(f"{PREFIX}/customize-schedule", json=_customize_payload(user_id, role_model_id))

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to load role model: OperationalError"}
    assert fake_ai.prompts == []


def test_unexpected_error_returns_500_envelope(client):
    _, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory)
    fake_ai.error = RuntimeError("socket exploded")

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.post(f"{PREFIX}/customize-schedule", json=_customize_payload(user_id, role_model_id))

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}


def test_customize_with_non_string_color_uses_lookup(client):
    test_client, session_factory, fake_ai = client
    user_id, role_model_id = _seed(session_factory)
    fake_ai.completion = (
        'EXPLANATION: Earlier workout.\nSCHEDULE: [{"id": "a", "time": "6:00 AM", '
        '"activity": "Morning exercise", "category": "health", "color": 123}]'
    )

    response = test_client.post(f"{PREFIX}/customize-schedule", json=_customize_payload(user_id, role_model_id))

    assert response.status_code == 200
    assert response.json()["data"]["modifiedSchedule"][0]["color"] == "#10B981"


def test_stop_failure_clearing_pointer_does_not_lock_user_out(client, monkeypatch):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)
    confirmed = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))
    schedule_id = confirmed.json()["data"]["userScheduleId"]

    def failing_clear(self, user_id, schedule_id):
        raise PersistenceError("Failed to clear active schedule: OperationalError")

    monkeypatch.setattr(ScheduleStore, "clear_active_schedule", failing_clear)
    failed = test_client.post(f"{PREFIX}/stop-schedule", json={"userId": str(user_id)})
    assert failed.status_code == 500
    monkeypatch.undo()

    active = test_client.get(f"{PREFIX}/active-schedule/{user_id}").json()["data"]
    assert active["userScheduleId"] == schedule_id
    assert active["status"] == "active"

    stopped = test_client.post(f"{PREFIX}/stop-schedule", json={"userId": str(user_id)})
    assert stopped.status_code == 200
    again = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))
    assert again.status_code == 200


def test_stop_clears_pointer_to_completed_schedule(client):
    test_client, session_factory, _ = client
    user_id, role_model_id = _seed(session_factory)
    confirmed = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))
    schedule_id = confirmed.json()["data"]["userScheduleId"]
    with session_factory() as db:
        db.get(UserSchedule, UUID(schedule_id)).status = "completed"
        db.commit()

    stopped = test_client.post(f"{PREFIX}/stop-schedule", json={"userId": str(user_id)})

    assert stopped.status_code == 200
    assert stopped.json()["data"] == {"userScheduleId": schedule_id, "status": "completed"}
    with session_factory() as db:
        assert db.get(User, user_id).active_schedule_id is None
    again = test_client.post(f"{PREFIX}/confirm-schedule", json=_confirm_payload(user_id, role_model_id))
    assert again.status_code == 200


def test_access_and_error_logs_carry_user_id(client, caplog):
    test_client, session_factory, _ = client
    user_id, _ = _seed(session_factory)
    caplog.handler.addFilter(RequestContextFilter())
    caplog.set_level(logging.INFO)

    response = test_client.post(f"{PREFIX}/stop-schedule", json={"userId": str(user_id)})

    assert response.status_code == 400
    access = [record for record in caplog.records if record.name == "app.core.middleware"]
    errors = [record for record in caplog.records if record.name == "app.core.errors"]
    assert access and errors
    assert access[-1].user_id == str(user_id)
    assert errors[-1].user_id == str(user_id)
