from datetime import timedelta

import pytest

from conftest import NOW, make_task

from taskboard import storage as st
from taskboard.errors import NotFoundError, PersistenceError, ValidationError
from taskboard.models import Activity, ActivityType
from taskboard.repository import ActivityLog, TaskRepository


def test_load_skips_invalid_and_duplicate_records(storage):
    good = make_task(1).to_record()
    bad = dict(make_task(2).to_record(), title="")
    storage.save(st.TASKS, [good, bad, good])

    repo = TaskRepository(storage)
    assert repo.load() == 1
    assert [t.id for t in repo.all()] == ["1"]
    assert repo.rejected == ["2", "1"]


def test_add_save_and_reload(storage):
    repo = TaskRepository(storage)
    repo.add(make_task(1))
    repo.add(make_task(2))
    assert repo.save() is True

    again = TaskRepository(storage)
    again.load()
    assert [t.id for t in again.all()] == ["1", "2"]


def test_duplicate_id_rejected(storage):
    repo = TaskRepository(storage)
    repo.add(make_task(1))
    with pytest.raises(ValidationError):
        repo.add(make_task(1))


def test_require_and_replace(storage):
    repo = TaskRepository(storage)
    repo.add(make_task(1))
    assert repo.require("1").title == "Task 1"
    repo.replace(make_task(1, title="Renamed"))
    assert repo.get("1").title == "Renamed"
    with pytest.raises(NotFoundError, match="Task not found"):
        repo.require("missing")
    with pytest.raises(NotFoundError):
        repo.replace(make_task("missing"))


def test_remove_where(storage):
    repo = TaskRepository(storage)
    for i in range(4):
        repo.add(make_task(i, assigned_client_id="c" if i % 2 else None))
    assert repo.remove_where(lambda t: t.assigned_client_id == "c") == 2
    assert len(repo) == 2
    assert repo.remove("0") is True
    assert repo.remove("0") is False


def test_commit_raises_on_failed_save(storage, monkeypatch):
    repo = TaskRepository(storage)
    task = repo.add(make_task(1))
    monkeypatch.setattr(storage, "save", lambda name, records: False)
    with pytest.raises(PersistenceError) as exc:
        repo.commit(task)
    assert exc.value.collection == "tasks"
    assert exc.value.record is task
    assert repo.get("1") is task


def test_activity_log_queries(storage):
    log = ActivityLog(storage)
    for i, task_id in enumerate(["t1", "t2", "t1"]):
        log.add(Activity(
            id=f"a{i}",
            task_id=task_id,
            type=ActivityType.UPDATED,
            user_id="u1" if i else "u2",
            timestamp=NOW + timedelta(minutes=i),
        ))
    assert [a.id for a in log.for_task("t1")] == ["a2", "a0"]
    assert [a.id for a in log.for_user("u1")] == ["a2", "a1"]
    assert [a.id for a in log.recent(2)] == ["a2", "a1"]
    assert [a.id for a in log.between(NOW, NOW + timedelta(minutes=1))] == ["a0", "a1"]
