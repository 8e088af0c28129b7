from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lets_habit.db import Base
from lets_habit.db.deps import get_db
from lets_habit.db.models.habit_group import HabitGroup
from lets_habit.db.models.user_habit_config import UserHabitConfig
from lets_habit.main import app
from lets_habit.services import habit_service


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

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _create_user(client: TestClient, name: str) -> str:
    response = client.post("/users", json={"name": name})
    assert response.status_code == 201
    return response.json()["id"]


def _create_habit(client: TestClient, user_id: str, **overrides) -> dict:
    payload = {"user_id": user_id, "name": "Morning run"}
    payload.update(overrides)
    response = client.post("/habits", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_habit_with_cooperators(client):
    test_client, SessionLocal = client
    owner = _create_user(test_client, "Owner")
    buddy = _create_user(test_client, "Buddy")

    body = _create_habit(
        test_client,
        owner,
        check_frequency="daily",
        check_days=[4, 0, 2, 2],
        cooperators=[buddy],
    )

    habit = body["habit"]
    assert habit["creator_id"] == owner
    assert habit["public_level"] == "private"
    assert habit["check_days"] == [0, 2, 4]
    assert [member["id"] for member in body["cooperators"]] == [owner, buddy]
    assert body["config"]["current_streak"] == 0
    assert body["config"]["heatmap_color"] == "#40c463"
    assert body["current_period"]["logged"] is False
    assert body["request_id"]

    session = SessionLocal()
    try:
        assert session.query(HabitGroup).count() == 2
        assert session.query(UserHabitConfig).count() == 2
    finally:
        session.close()


def test_weekly_habit_ignores_check_days(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")

    body = _create_habit(test_client, owner, check_frequency="weekly", check_days=[1])
    assert body["habit"]["check_days"] == list(range(7))


def test_create_habit_validation(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")

    missing = test_client.post(
        "/habits",
        json={"user_id": owner, "name": "Swim", "cooperators": [str(uuid4())]},
    )
    assert missing.status_code == 400
    assert missing.json()["detail"] == "has non-existent user id"

    assert test_client.post("/habits", json={"user_id": owner, "name": " "}).status_code == 422
    assert test_client.post("/habits", json={"user_id": owner, "name": "X", "check_days": []}).status_code == 422
    assert test_client.post("/habits", json={"user_id": owner, "name": "X", "check_days": [7]}).status_code == 422
    assert (
        test_client.post("/habits", json={"user_id": owner, "name": "X", "check_frequency": "hourly"}).status_code
        == 422
    )
    assert (
        test_client.post("/habits", json={"user_id": owner, "name": "X", "check_deadline_delay": 86400}).status_code
        == 422
    )
    assert test_client.post("/habits", json={"user_id": str(uuid4()), "name": "X"}).status_code == 404


def test_group_size_is_capped(client, monkeypatch):
    test_client, _ = client
    monkeypatch.setattr(habit_service.settings, "habit_group_max_size", 2)
    owner = _create_user(test_client, "Owner")
    first = _create_user(test_client, "First")
    second = _create_user(test_client, "Second")

    response = test_client.post("/habits", json={"user_id": owner, "name": "Read", "cooperators": [first, second]})
    assert response.status_code == 400

    body = _create_habit(test_client, owner, cooperators=[first], public_level="public")
    join = test_client.post(f"/habits/{body['habit']['id']}/join", json={"user_id": second})
    assert join.status_code == 400


def test_private_habit_hidden_from_outsiders(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    outsider = _create_user(test_client, "Outsider")
    habit_id = _create_habit(test_client, owner)["habit"]["id"]

    assert test_client.get(f"/habits/{habit_id}", params={"user_id": owner}).status_code == 200
    hidden = test_client.get(f"/habits/{habit_id}", params={"user_id": outsider})
    assert hidden.status_code == 403
    assert test_client.get(f"/habits/{uuid4()}", params={"user_id": owner}).status_code == 404


def test_public_habit_visible_and_joinable(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    joiner = _create_user(test_client, "Joiner")
    habit_id = _create_habit(test_client, owner, public_level="public")["habit"]["id"]

    viewed = test_client.get(f"/habits/{habit_id}", params={"user_id": joiner})
    assert viewed.status_code == 200
    assert viewed.json()["config"] is None

    joined = test_client.post(f"/habits/{habit_id}/join", json={"user_id": joiner})
    assert joined.status_code == 200
    assert {member["id"] for member in joined.json()["cooperators"]} == {owner, joiner}
    assert joined.json()["config"]["current_streak"] == 0

    again = test_client.post(f"/habits/{habit_id}/join", json={"user_id": joiner})
    assert again.status_code == 409


def test_cannot_join_private_habit(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    joiner = _create_user(test_client, "Joiner")
    habit_id = _create_habit(test_client, owner)["habit"]["id"]

    response = test_client.post(f"/habits/{habit_id}/join", json={"user_id": joiner})
    assert response.status_code == 403


def test_list_habits_paginates(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    other = _create_user(test_client, "Other")
    for idx in range(3):
        _create_habit(test_client, owner, name=f"Habit {idx}")
    _create_habit(test_client, other, name="Not mine")

    first_page = test_client.get("/habits", params={"user_id": owner, "page": 1, "page_size": 2})
    assert first_page.status_code == 200
    body = first_page.json()
    assert body["total"] == 3
    assert len(body["habits"]) == 2

    second_page = test_client.get("/habits", params={"user_id": owner, "page": 2, "page_size": 2}).json()
    names = {item["habit"]["name"] for item in body["habits"] + second_page["habits"]}
    assert names == {"Habit 0", "Habit 1", "Habit 2"}

    assert test_client.get("/habits", params={"user_id": owner, "page": 0}).status_code == 422
    assert test_client.get("/habits", params={"user_id": str(uuid4())}).status_code == 404


def test_only_creator_can_update_or_delete(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    buddy = _create_user(test_client, "Buddy")
    habit_id = _create_habit(test_client, owner, cooperators=[buddy])["habit"]["id"]

    forbidden = test_client.patch(f"/habits/{habit_id}", json={"user_id": buddy, "name": "Mine now"})
    assert forbidden.status_code == 403
    assert test_client.delete(f"/habits/{habit_id}", params={"user_id": buddy}).status_code == 403

    updated = test_client.patch(
        f"/habits/{habit_id}",
        json={"user_id": owner, "name": "Evening run", "public_level": "public", "check_days": [5, 6]},
    )
    assert updated.status_code == 200
    habit = updated.json()["habit"]
    assert habit["name"] == "Evening run"
    assert habit["public_level"] == "public"
    assert habit["check_days"] == [5, 6]

    deleted = test_client.delete(f"/habits/{habit_id}", params={"user_id": owner})
    assert deleted.status_code == 204
    assert test_client.get(f"/habits/{habit_id}", params={"user_id": owner}).status_code == 404


def test_creator_adds_cooperators(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    buddy = _create_user(test_client, "Buddy")
    late = _create_user(test_client, "Late")
    habit_id = _create_habit(test_client, owner, cooperators=[buddy])["habit"]["id"]

    response = test_client.post(
        f"/habits/{habit_id}/cooperators",
        json={"user_id": owner, "cooperator_ids": [buddy, late]},
    )
    assert response.status_code == 200
    assert [member["id"] for member in response.json()["cooperators"]] == [owner, buddy, late]

    not_creator = test_client.post(
        f"/habits/{habit_id}/cooperators",
        json={"user_id": buddy, "cooperator_ids": [late]},
    )
    assert not_creator.status_code == 403

    unknown = test_client.post(
        f"/habits/{habit_id}/cooperators",
        json={"user_id": owner, "cooperator_ids": [str(uuid4())]},
    )
    assert unknown.status_code == 400


def test_leave_hands_over_and_last_member_deletes(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    buddy = _create_user(test_client, "Buddy")
    habit_id = _create_habit(test_client, owner, cooperators=[buddy])["habit"]["id"]

    left = test_client.post(f"/habits/{habit_id}/leave", json={"user_id": owner})
    assert left.status_code == 200
    assert left.json()["habit_deleted"] is False

    detail = test_client.get(f"/habits/{habit_id}", params={"user_id": buddy}).json()
    assert detail["habit"]["creator_id"] == buddy
    assert [member["id"] for member in detail["cooperators"]] == [buddy]

    not_member = test_client.post(f"/habits/{habit_id}/leave", json={"user_id": owner})
    assert not_member.status_code == 404

    last = test_client.post(f"/habits/{habit_id}/leave", json={"user_id": buddy})
    assert last.json()["habit_deleted"] is True
    assert test_client.get(f"/habits/{habit_id}", params={"user_id": buddy}).status_code == 404


def test_update_heatmap_color(client):
    test_client, _ = client
    owner = _create_user(test_client, "Owner")
    outsider = _create_user(test_client, "Outsider")
    habit_id = _create_habit(test_client, owner)["habit"]["id"]

    response = test_client.patch(
        f"/habits/{habit_id}/config",
        json={"user_id": owner, "heatmap_color": "#FF8800"},
    )
    assert response.status_code == 200
    assert response.json()["config"]["heatmap_color"] == "#ff8800"

    invalid = test_client.patch(f"/habits/{habit_id}/config", json={"user_id": owner, "heatmap_color": "orange"})
    assert invalid.status_code == 422

    outsider_resp = test_client.patch(
        f"/habits/{habit_id}/config",
        json={"user_id": outsider, "heatmap_color": "#000000"},
    )
    assert outsider_resp.status_code == 403
