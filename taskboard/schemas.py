"""Wire schemas for the stored JSON records.

Stored records use camelCase keys and ISO-8601 timestamps. Everything that
comes back from storage passes through these models before it becomes a
domain record; a record that doesn't validate is rejected, not patched up.
The exception is ``dueDate``: an unparsable value is stored as null so that
due-date sorting stays defined.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import RecordValidationError
from .models import (
    Activity,
    ActivityType,
    Category,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
    User,
    UserRole,
)
from .utils import as_utc, parse_timestamp

logger = logging.getLogger(__name__)


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=False)

    @field_validator("*", mode="after")
    @classmethod
    def _timestamps_in_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class TaskRecord(_Record):
    id: str = Field(min_length=1)
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_client_id: Optional[str] = Field(default=None, alias="assignedClientId")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_at: datetime = Field(alias="createdAt")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    category_id: Optional[str] = Field(default=None, alias="categoryId")

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value

    @field_validator("assigned_client_id", mode="before")
    @classmethod
    def _blank_assignee_is_unassigned(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _lenient_due_date(cls, value: Any) -> Any:
        if value is None or isinstance(value, datetime):
            return value
        parsed = parse_timestamp(value)
        if parsed is None:
            logger.warning("Unparsable dueDate %r treated as no due date", value)
        return parsed

    @model_validator(mode="after")
    def _completed_at_matches_status(self) -> "TaskRecord":
        if (self.status == TaskStatus.COMPLETED) != (self.completed_at is not None):
            raise ValueError("completedAt must be set exactly when status is completed")
        return self

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            description=self.description,
            status=self.status,
            priority=self.priority,
            assigned_client_id=self.assigned_client_id,
            created_by=self.created_by,
            created_at=self.created_at,
            due_date=self.due_date,
            completed_at=self.completed_at,
            category_id=self.category_id,
        )


class UserRecord(_Record):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    role: UserRole = UserRole.CLIENT
    email: str = ""
    created_at: datetime = Field(alias="createdAt")

    def to_domain(self) -> User:
        return User(id=self.id, name=self.name, role=self.role, email=self.email, created_at=self.created_at)


class CategoryRecord(_Record):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    color: str = "#3498db"
    description: str = ""
    created_at: datetime = Field(alias="createdAt")

    def to_domain(self) -> Category:
        return Category(
            id=self.id,
            name=self.name,
            color=self.color,
            description=self.description,
            created_at=self.created_at,
        )


class ActivityRecord(_Record):
    id: str = Field(min_length=1)
    task_id: str = Field(alias="taskId")
    type: ActivityType
    user_id: Optional[str] = Field(default=None, alias="userId")
    description: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    def to_domain(self) -> Activity:
        return Activity(
            id=self.id,
            task_id=self.task_id,
            type=self.type,
            user_id=self.user_id,
            description=self.description,
            details=dict(self.details),
            timestamp=self.timestamp,
        )


class SubtaskRecord(_Record):
    id: str = Field(min_length=1)
    parent_task_id: str = Field(alias="parentTaskId")
    title: str = Field(min_length=1)
    completed: bool = False
    estimated_hours: float = Field(default=0.0, ge=0, alias="estimatedHours")
    created_at: datetime = Field(alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @model_validator(mode="after")
    def _completed_at_matches_flag(self) -> "SubtaskRecord":
        if self.completed != (self.completed_at is not None):
            raise ValueError("completedAt must be set exactly when the subtask is completed")
        return self

    def to_domain(self) -> Subtask:
        return Subtask(
            id=self.id,
            parent_task_id=self.parent_task_id,
            title=self.title,
            completed=self.completed,
            estimated_hours=self.estimated_hours,
            created_at=self.created_at,
            completed_at=self.completed_at,
        )


R = TypeVar("R", bound=_Record)


def _parse(schema: Type[R], record: Any) -> R:
    record_id = record.get("id") if isinstance(record, dict) else None
    try:
        return schema.model_validate(record)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}" for err in exc.errors()
        )
        raise RecordValidationError(
            f"Invalid {schema.__name__[:-len('Record')].lower()} record {record_id!r}: {problems}",
            record_id=record_id,
        ) from exc


def parse_task(record: Any) -> Task:
    return _parse(TaskRecord, record).to_domain()


def parse_user(record: Any) -> User:
    return _parse(UserRecord, record).to_domain()


def parse_category(record: Any) -> Category:
    return _parse(CategoryRecord, record).to_domain()


def parse_activity(record: Any) -> Activity:
    return _parse(ActivityRecord, record).to_domain()


def parse_subtask(record: Any) -> Subtask:
    return _parse(SubtaskRecord, record).to_domain()
