from datetime import datetime, timedelta, timezone

import pytest

from taskboard.auth import AuthService
from taskboard.config import AppConfig
from taskboard.db import dispose_engine
from taskboard.models import Task, TaskPriority, TaskStatus
from taskboard.storage import StorageService

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def make_task(task_id, **fields):
    fields.setdefault("title", f"Task {task_id}")
    fields.setdefault("created_at", NOW - timedelta(days=1))
    if fields.get("status") == TaskStatus.COMPLETED:
        fields.setdefault("completed_at", NOW)
    return Task(id=str(task_id), **fields)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db_url(tmp_path):
    url = f"sqlite:///{(tmp_path / 'taskboard.db').as_posix()}"
    yield url
    dispose_engine()


@pytest.fixture
def config(db_url):
    return AppConfig(
        database_url=db_url,
        search_debounce_ms=300,
        trend_days=30,
        seed_default_users=True,
        log_level="DEBUG",
    )


@pytest.fixture
def storage(db_url):
    return StorageService(db_url)


@pytest.fixture
def auth(storage):
    return AuthService(storage)


@pytest.fixture
def sample_tasks():
    return [
        make_task(1, assigned_client_id="client_001", priority=TaskPriority.HIGH,
                  due_date=NOW - timedelta(days=1), status=TaskStatus.IN_PROGRESS),
        make_task(2, assigned_client_id="client_001", status=TaskStatus.COMPLETED,
                  created_at=NOW - timedelta(days=3), completed_at=NOW - timedelta(days=1)),
        make_task(3, assigned_client_id="client_002", due_date=NOW + timedelta(days=2)),
        make_task(4, title="Unassigned work", priority=TaskPriority.LOW),
    ]
