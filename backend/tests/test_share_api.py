from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from journalmate.db.base import Base
from journalmate.db.deps import get_db
from journalmate.db.models.activity import Activity
from journalmate.main import app


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


def _shared_token(client: TestClient) -> str:
    owner_id = str(uuid4())
    plan = client.post(
        "/activities",
        json={
            "userId": owner_id,
            "title": "Learn Portuguese",
            "category": "learning",
            "tasks": [{"title": "Download app"}, {"title": "Daily lesson"}],
        },
    ).json()
    response = client.post(f"/activities/{plan['id']}/share", json={"userId": owner_id})
    return response.json()["shareToken"]


def test_view_shared_plan_counts_views(client):
    test_client, session_factory = client
    token = _shared_token(test_client)

    first = test_client.get(f"/share/{token}")
    second = test_client.get(f"/share/{token}")

    assert first.status_code == 200
    body = second.json()
    assert body["activity"]["isPublic"] is True
    assert [task["title"] for task in body["tasks"]] == ["Download app", "Daily lesson"]
    assert body["planSummary"] == "Learn Portuguese - A learning plan with 2 tasks"
    with session_factory() as db:
        activity = db.query(Activity).filter(Activity.share_token == token).one()
        assert activity.view_count == 2
        assert activity.adoption_count == 0


def test_view_unknown_share_token(client):
    test_client, _ = client
    assert test_client.get("/share/unknown").status_code == 404


def test_view_private_plan_is_forbidden(client):
    test_client, session_factory = client
    token = _shared_token(test_client)
    with session_factory() as db:
        activity = db.query(Activity).filter(Activity.share_token == token).one()
        activity.is_public = False
        db.commit()

    assert test_client.get(f"/share/{token}").status_code == 403
