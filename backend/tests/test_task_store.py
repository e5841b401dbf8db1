from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from journalmate.db.base import Base
from journalmate.db import models  # noqa: F401  ensure models are loaded
from journalmate.db.models.activity import Activity
from journalmate.db.models.task import Task
from journalmate.services import activity_store, task_store
from journalmate.services.errors import NotFoundError
from journalmate.services.task_store import TaskSeed
from journalmate.services.user_service import get_or_create_user


@pytest.fixture()
def db():
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

    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def _activity(db, titles=("First", "Second")) -> Activity:
    user_id = uuid4()
    get_or_create_user(db, user_id)
    activity = activity_store.create(db, user_id, {"title": "Plan"}, [TaskSeed(title=title) for title in titles])
    db.commit()
    return activity


def test_create_many_keeps_seed_order_and_lineage(db):
    activity = _activity(db, titles=())
    lineage = uuid4()

    created = task_store.create_many(
        db,
        activity.id,
        [
            TaskSeed(title="Wake up", original_task_id=lineage),
            TaskSeed(title="Stretch", priority="high"),
            TaskSeed(title="Run", completed=True),
        ],
    )
    db.commit()

    assert len({task.id for task in created}) == 3
    tasks = task_store.list_by_activity(db, activity.id)
    assert [task.title for task in tasks] == ["Wake up", "Stretch", "Run"]
    assert [task.position for task in tasks] == [0, 1, 2]
    assert tasks[0].original_task_id == lineage
    assert tasks[1].original_task_id is None
    assert tasks[1].priority == "high"
    assert tasks[2].completed is True
    assert tasks[2].completed_at is not None
    assert all(task.user_id == activity.user_id for task in tasks)


def test_create_many_rejects_unknown_activity(db):
    with pytest.raises(NotFoundError):
        task_store.create_many(db, uuid4(), [TaskSeed(title="Orphan")])


def test_list_by_activity_rejects_unknown_activity(db):
    with pytest.raises(NotFoundError):
        task_store.list_by_activity(db, uuid4())


def test_find_by_original_task_id(db):
    activity = _activity(db, titles=())
    lineage = uuid4()
    task_store.create_many(db, activity.id, [TaskSeed(title="Other"), TaskSeed(title="Tracked", original_task_id=lineage)])
    db.commit()

    found = task_store.find_by_original_task_id(db, activity.id, lineage)

    assert found is not None
    assert found.title == "Tracked"
    assert task_store.find_by_original_task_id(db, activity.id, uuid4()) is None


def test_find_by_original_task_id_rejects_unknown_activity(db):
    with pytest.raises(NotFoundError):
        task_store.find_by_original_task_id(db, uuid4(), uuid4())


def test_set_completed_is_idempotent(db):
    activity = _activity(db)
    task = task_store.list_by_activity(db, activity.id)[0]

    updated, changed = task_store.set_completed(db, task.id, True)
    db.commit()
    first_completed_at = updated.completed_at
    assert changed is True
    assert first_completed_at is not None

    again, changed_again = task_store.set_completed(db, task.id, True)
    db.commit()
    assert changed_again is False
    assert again.completed_at == first_completed_at

    cleared, changed_back = task_store.set_completed(db, task.id, False)
    db.commit()
    assert changed_back is True
    assert cleared.completed is False
    assert cleared.completed_at is None


def test_set_completed_unknown_task(db):
    with pytest.raises(NotFoundError):
        task_store.set_completed(db, uuid4(), True)


def test_lineage_pointer_survives_deletion_of_referenced_task(db):
    source = _activity(db, titles=("Source task",))
    source_task = task_store.list_by_activity(db, source.id)[0]
    source_task_id = source_task.id
    copy = _activity(db, titles=())
    copy_id = copy.id
    task_store.create_many(db, copy.id, [TaskSeed(title="Copied", original_task_id=source_task.id)])
    db.commit()

    db.delete(db.get(Activity, source.id))
    db.commit()

    db.expunge_all()
    assert db.query(Task).filter(Task.id == source_task_id).count() == 0
    remaining = task_store.list_by_activity(db, copy_id)
    assert [task.original_task_id for task in remaining] == [source_task_id]


def test_seed_completed_at_is_kept_when_supplied(db):
    activity = _activity(db, titles=())
    stamp = datetime(2024, 5, 1, 12, 30)

    task_store.create_many(db, activity.id, [TaskSeed(title="Done earlier", completed=True, completed_at=stamp)])
    db.commit()

    task = task_store.list_by_activity(db, activity.id)[0]
    assert task.completed_at.replace(tzinfo=None) == stamp
