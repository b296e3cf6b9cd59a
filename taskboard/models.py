"""Domain records for the taskboard.

Records are immutable. State transitions return a new record; the owning
repository swaps it into its collection and persists.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .utils import format_timestamp, percentage, utcnow


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"


class ActivityType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    COMMENTED = "commented"
    COMPLETED = "completed"


_TASK_UPDATABLE = {"title", "description", "status", "assigned_client_id", "due_date", "priority", "category_id"}


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_client_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    category_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None or self.is_completed:
            return False
        return self.due_date < (now or utcnow())

    def is_assigned_to(self, client_id: Optional[str]) -> bool:
        return client_id is not None and self.assigned_client_id == client_id

    def with_status(self, status: TaskStatus, now: Optional[datetime] = None) -> "Task":
        """Set the status, keeping completed_at in step with it."""
        status = TaskStatus(status)
        if status == self.status:
            return self
        completed_at = (now or utcnow()) if status == TaskStatus.COMPLETED else None
        return replace(self, status=status, completed_at=completed_at)

    def toggle_status(self, now: Optional[datetime] = None) -> "Task":
        target = TaskStatus.PENDING if self.is_completed else TaskStatus.COMPLETED
        return self.with_status(target, now)

    def assign_to(self, client_id: str) -> "Task":
        return replace(self, assigned_client_id=client_id)

    def unassign(self) -> "Task":
        return replace(self, assigned_client_id=None)

    def apply_updates(self, changes: Dict[str, Any], now: Optional[datetime] = None) -> "Task":
        unknown = set(changes) - _TASK_UPDATABLE
        if unknown:
            raise KeyError(f"Cannot update task fields: {sorted(unknown)}")
        fields = {k: v for k, v in changes.items() if k != "status"}
        task = replace(self, **fields) if fields else self
        if "status" in changes:
            task = task.with_status(changes["status"], now)
        return task

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "assignedClientId": self.assigned_client_id,
            "createdBy": self.created_by,
            "createdAt": format_timestamp(self.created_at),
            "dueDate": format_timestamp(self.due_date),
            "priority": self.priority.value,
            "completedAt": format_timestamp(self.completed_at),
            "categoryId": self.category_id,
        }


@dataclass(frozen=True)
class User:
    id: str
    name: str
    role: UserRole = UserRole.CLIENT
    email: str = ""
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "email": self.email,
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str = "#3498db"
    description: str = ""
    created_at: datetime = field(default_factory=utcnow)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "description": self.description,
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class Activity:
    id: str
    task_id: str
    type: ActivityType
    user_id: Optional[str]
    description: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "type": self.type.value,
            "userId": self.user_id,
            "description": self.description,
            "details": dict(self.details),
            "timestamp": format_timestamp(self.timestamp),
        }


@dataclass(frozen=True)
class Subtask:
    id: str
    parent_task_id: str
    title: str
    completed: bool = False
    estimated_hours: float = 0.0
    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    def toggle(self, now: Optional[datetime] = None) -> "Subtask":
        if self.completed:
            return replace(self, completed=False, completed_at=None)
        return replace(self, completed=True, completed_at=now or utcnow())

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "parentTaskId": self.parent_task_id,
            "title": self.title,
            "completed": self.completed,
            "estimatedHours": self.estimated_hours,
            "createdAt": format_timestamp(self.created_at),
            "completedAt": format_timestamp(self.completed_at),
        }


@dataclass(frozen=True)
class SubtaskStats:
    total: int
    completed: int
    pending: int
    completion_percentage: int
    total_estimated_hours: float


def subtask_stats(subtasks: Iterable[Subtask]) -> SubtaskStats:
    items: List[Subtask] = list(subtasks)
    done = sum(1 for s in items if s.completed)
    return SubtaskStats(
        total=len(items),
        completed=done,
        pending=len(items) - done,
        completion_percentage=percentage(done, len(items)),
        total_estimated_hours=sum(s.estimated_hours for s in items),
    )


DEFAULT_USERS = (
    {"id": "admin_001", "name": "Admin User", "role": "admin", "email": "admin@taskmanager.com"},
    {"id": "client_001", "name": "John Doe", "role": "client", "email": "john@example.com"},
    {"id": "client_002", "name": "Jane Smith", "role": "client", "email": "jane@example.com"},
    {"id": "client_003", "name": "Bob Johnson", "role": "client", "email": "bob@example.com"},
)


def default_users(now: Optional[datetime] = None) -> List[User]:
    created = now or utcnow()
    return [
        User(id=u["id"], name=u["name"], role=UserRole(u["role"]), email=u["email"], created_at=created)
        for u in DEFAULT_USERS
    ]
