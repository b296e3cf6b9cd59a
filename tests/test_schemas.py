import logging

import pytest

from taskboard.errors import RecordValidationError, ValidationError
from taskboard.models import ActivityType, TaskPriority, TaskStatus
from taskboard.schemas import parse_activity, parse_subtask, parse_task, parse_user


def task_record(**overrides):
    record = {
        "id": "task_1",
        "title": "Write report",
        "description": "",
        "status": "pending",
        "assignedClientId": "client_001",
        "createdBy": "admin_001",
        "createdAt": "2024-05-01T09:30:00.000Z",
        "dueDate": "2024-05-20T00:00:00.000Z",
        "priority": "high",
        "completedAt": None,
    }
    record.update(overrides)
    return record


def test_parse_task():
    task = parse_task(task_record())
    assert task.priority == TaskPriority.HIGH
    assert task.status == TaskStatus.PENDING
    assert task.due_date.tzinfo is not None
    assert task.category_id is None


def test_missing_title_is_rejected():
    record = task_record()
    del record["title"]
    with pytest.raises(RecordValidationError) as exc:
        parse_task(record)
    assert exc.value.record_id == "task_1"


def test_blank_title_is_rejected():
    with pytest.raises(ValidationError):
        parse_task(task_record(title="   "))


def test_unknown_status_is_rejected():
    with pytest.raises(RecordValidationError):
        parse_task(task_record(status="done"))


def test_completed_at_must_match_status():
    with pytest.raises(RecordValidationError):
        parse_task(task_record(status="completed", completedAt=None))
    with pytest.raises(RecordValidationError):
        parse_task(task_record(completedAt="2024-05-02T00:00:00Z"))


def test_unparsable_due_date_becomes_null(caplog):
    with caplog.at_level(logging.WARNING):
        task = parse_task(task_record(dueDate="next tuesday"))
    assert task.due_date is None
    assert "next tuesday" in caplog.text


def test_blank_assignee_is_unassigned():
    assert parse_task(task_record(assignedClientId="")).assigned_client_id is None
    assert parse_task(task_record(assignedClientId="  ")).assigned_client_id is None


def test_naive_timestamps_are_utc():
    task = parse_task(task_record(createdAt="2024-05-01T09:30:00"))
    assert task.created_at.utcoffset().total_seconds() == 0


def test_parse_user_and_activity():
    user = parse_user({"id": "u1", "name": "Ann", "role": "client", "email": "", "createdAt": "2024-01-01T00:00:00Z"})
    assert user.is_client
    activity = parse_activity({
        "id": "a1",
        "taskId": "task_1",
        "type": "status_changed",
        "userId": "u1",
        "description": "moved",
        "details": {"from": "pending", "to": "in_progress"},
        "timestamp": "2024-01-01T00:00:00Z",
    })
    assert activity.type == ActivityType.STATUS_CHANGED
    assert activity.details["to"] == "in_progress"


def test_parse_user_rejects_empty_name():
    with pytest.raises(RecordValidationError):
        parse_user({"id": "u1", "name": "", "createdAt": "2024-01-01T00:00:00Z"})


def test_subtask_negative_hours_rejected():
    with pytest.raises(RecordValidationError):
        parse_subtask({
            "id": "s1",
            "parentTaskId": "task_1",
            "title": "step",
            "estimatedHours": -1,
            "createdAt": "2024-01-01T00:00:00Z",
        })
