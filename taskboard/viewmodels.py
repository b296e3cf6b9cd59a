"""Admin and client view models.

A view model owns the in-memory collections for one session, turns UI
commands into new records, and hands the pages a ``ViewData`` computed by
``derive_view``. Every command follows the same order: validate and check
scope, change the in-memory collection, record an activity, save the touched
collections, call ``on_change``. A failed save is raised as PersistenceError
only after ``on_change`` ran, because the in-memory change stands either way.

Several sessions share one store, so each command first reloads the
collections from storage. A collection whose last save failed is listed in
``unsaved`` and is not reloaded until a later save succeeds.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Type

from .auth import AuthService
from .config import AppConfig, get_config
from .debounce import Debouncer
from .errors import PersistenceError, ScopeViolationError, ValidationError
from .models import (
    Activity,
    ActivityType,
    Category,
    Subtask,
    SubtaskStats,
    Task,
    TaskPriority,
    TaskStatus,
    User,
    subtask_stats,
)
from .repository import ActivityLog, CategoryRepository, RecordRepository, SubtaskRepository, TaskRepository
from .storage import StorageService
from .utils import generate_unique_id, parse_timestamp, utcnow
from .view_engine import ALL, UNASSIGNED, STATUS_FILTERS, TaskCounts, derive_view, scope_tasks

logger = logging.getLogger(__name__)

OnChange = Callable[["ViewData"], None]


@dataclass(frozen=True)
class ViewData:
    tasks: Tuple[Task, ...]
    counts: TaskCounts
    filters: Dict[str, str]
    current_user: Optional[User]
    clients: Tuple[User, ...] = ()
    categories: Tuple[Category, ...] = ()
    rejected: Dict[str, List[str]] = field(default_factory=dict)


def _coerce(enum_cls: Type, value: Any, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {label}: {value}") from None


def _coerce_due_date(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValidationError(f"Invalid due date: {value}")
    return parsed


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    return str(value).strip()


class _TaskViewModel(ABC):
    def __init__(
        self,
        storage: StorageService,
        auth: AuthService,
        config: Optional[AppConfig] = None,
        on_change: Optional[OnChange] = None,
        now_fn: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.auth = auth
        self.config = config or get_config()
        self.on_change = on_change
        self.now_fn = now_fn

        self.tasks = TaskRepository(storage)
        self.categories = CategoryRepository(storage)
        self.subtasks = SubtaskRepository(storage)
        self.activities = ActivityLog(storage)
        self.unsaved: Set[str] = set()
        self._load()

        self.status_filter = ALL
        self.search = ""
        self._debouncer: Optional[Debouncer] = None
        if on_change is not None:
            self._debouncer = Debouncer(self.config.search_debounce_seconds, self._apply_search)

    def _repositories(self) -> Tuple[RecordRepository, ...]:
        return (self.tasks, self.categories, self.subtasks, self.activities)

    def _load(self) -> None:
        for repo in self._repositories():
            if repo.collection in self.unsaved:
                logger.debug("Keeping unsaved %s instead of reloading", repo.collection)
                continue
            repo.load()

    def _now(self) -> datetime:
        return self.now_fn()

    @property
    def viewer_id(self) -> Optional[str]:
        user = self.auth.current_user
        return user.id if user else None

    # ---------------- view ----------------

    @property
    @abstractmethod
    def viewer_scope(self) -> str:
        """``"all"`` or the client id whose tasks this view model may see."""

    def _filters(self) -> Dict[str, str]:
        return {"status": self.status_filter, "search": self.search}

    def get_view_data(self) -> ViewData:
        view = derive_view(
            self.tasks.all(),
            viewer_scope=self.viewer_scope,
            status_filter=self.status_filter,
            client_filter=self._filters().get("client", ALL),
            search_text=self.search,
            now=self._now(),
        )
        return ViewData(
            tasks=view.tasks,
            counts=view.counts,
            filters=self._filters(),
            current_user=self.auth.current_user,
            clients=tuple(self.auth.clients()),
            categories=tuple(self.categories.all()),
            rejected={repo.collection: list(repo.rejected) for repo in self._repositories() if repo.rejected},
        )

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.get_view_data())

    def refresh(self) -> ViewData:
        """Reload every collection from storage, except unsaved ones."""
        self._load()
        self._notify()
        return self.get_view_data()

    # ---------------- filters ----------------

    def set_status_filter(self, status: str) -> None:
        if status not in STATUS_FILTERS:
            raise ValidationError(f"Unknown status filter: {status}")
        self.status_filter = status
        self._notify()

    def set_search(self, text: Optional[str]) -> None:
        if self._debouncer is None:
            self._apply_search(text or "")
        else:
            self._debouncer.call(text or "")

    def flush_search(self) -> bool:
        return self._debouncer.flush() if self._debouncer is not None else False

    def _apply_search(self, text: str) -> None:
        self.search = text
        self._notify()

    def clear_filters(self) -> None:
        if self._debouncer is not None:
            self._debouncer.cancel()
        self.status_filter = ALL
        self.search = ""
        self._notify()

    def close(self) -> None:
        if self._debouncer is not None:
            self._debouncer.cancel()

    # ---------------- shared helpers ----------------

    def _log(
        self,
        task_id: str,
        activity_type: ActivityType,
        description: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Activity:
        activity = Activity(
            id=generate_unique_id("activity"),
            task_id=task_id,
            type=activity_type,
            user_id=self.viewer_id,
            description=description,
            details=details or {},
            timestamp=self._now(),
        )
        self.activities.add(activity)
        return activity

    def _persist(self, record: Any, *repos: RecordRepository) -> Any:
        failed = []
        for repo in repos:
            if repo.save():
                self.unsaved.discard(repo.collection)
            else:
                self.unsaved.add(repo.collection)
                failed.append(repo.collection)
        self._notify()
        if failed:
            logger.error("In-memory change kept but not saved: %s", ", ".join(failed))
            raise PersistenceError(failed[0], record)
        return record

    def _log_status_change(self, before: Task, after: Task) -> None:
        details = {"from": before.status.value, "to": after.status.value}
        if after.is_completed:
            self._log(after.id, ActivityType.COMPLETED, f'Task "{after.title}" completed', details)
        else:
            self._log(
                after.id,
                ActivityType.STATUS_CHANGED,
                f'Task "{after.title}" moved to {after.status.value}',
                details,
            )

    def _change_status(self, task: Task, status: Any) -> Task:
        status = _coerce(TaskStatus, status, "status")
        updated = task.with_status(status, self._now())
        if updated is task:
            return task
        self.tasks.replace(updated)
        self._log_status_change(task, updated)
        logger.info("Task %s status %s -> %s", task.id, task.status.value, updated.status.value)
        return self._persist(updated, self.tasks, self.activities)

    def _toggle_subtask(self, subtask: Subtask) -> Subtask:
        updated = subtask.toggle(self._now())
        self.subtasks.replace(updated)
        state = "completed" if updated.completed else "reopened"
        self._log(
            subtask.parent_task_id,
            ActivityType.UPDATED,
            f'Subtask "{subtask.title}" {state}',
            {"subtaskId": subtask.id, "completed": updated.completed},
        )
        return self._persist(updated, self.subtasks, self.activities)

    def get_subtasks(self, task_id: str) -> List[Subtask]:
        return self.subtasks.for_task(task_id)


class AdminViewModel(_TaskViewModel):
    """Everything the admin dashboard can do. The admin sees every task."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.client_filter = ALL

    @property
    def viewer_scope(self) -> str:
        return ALL

    def _filters(self) -> Dict[str, str]:
        return {"status": self.status_filter, "client": self.client_filter, "search": self.search}

    def set_client_filter(self, client_id: str) -> None:
        self.client_filter = client_id or ALL
        self._notify()

    def clear_filters(self) -> None:
        self.client_filter = ALL
        super().clear_filters()

    # ---------------- lookups ----------------

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.tasks.get(task_id)

    def client_name(self, client_id: Optional[str]) -> str:
        if not client_id:
            return "Unassigned"
        user = self.auth.get_user(client_id)
        return user.name if user else "Unknown"

    def _validate_client(self, client_id: Optional[str]) -> Optional[str]:
        if not client_id or client_id == UNASSIGNED:
            return None
        user = self.auth.get_user(client_id)
        if user is None or not user.is_client:
            raise ValidationError(f"Unknown client: {client_id}")
        return client_id

    def _validate_category(self, category_id: Optional[str]) -> Optional[str]:
        if not category_id:
            return None
        if self.categories.get(category_id) is None:
            raise ValidationError(f"Unknown category: {category_id}")
        return category_id

    # ---------------- tasks ----------------

    def create_task(
        self,
        title: str,
        description: str = "",
        assigned_client_id: Optional[str] = None,
        priority: Any = TaskPriority.MEDIUM,
        due_date: Any = None,
        category_id: Optional[str] = None,
    ) -> Task:
        self._load()
        task = Task(
            id=generate_unique_id("task"),
            title=_require_text(title, "Title"),
            description=(description or "").strip(),
            priority=_coerce(TaskPriority, priority, "priority"),
            assigned_client_id=self._validate_client(assigned_client_id),
            created_by=self.viewer_id,
            created_at=self._now(),
            due_date=_coerce_due_date(due_date),
            category_id=self._validate_category(category_id),
        )
        self.tasks.add(task)
        self._log(task.id, ActivityType.CREATED, f'Task "{task.title}" created')
        if task.assigned_client_id:
            self._log(
                task.id,
                ActivityType.ASSIGNED,
                f"Assigned to {self.client_name(task.assigned_client_id)}",
                {"clientId": task.assigned_client_id},
            )
        logger.info("Created task %s", task.id)
        return self._persist(task, self.tasks, self.activities)

    def update_task(self, task_id: str, **changes: Any) -> Task:
        self._load()
        task = self.tasks.require(task_id)
        if "title" in changes:
            changes["title"] = _require_text(changes["title"], "Title")
        if "description" in changes:
            changes["description"] = (changes["description"] or "").strip()
        if "status" in changes:
            changes["status"] = _coerce(TaskStatus, changes["status"], "status")
        if "priority" in changes:
            changes["priority"] = _coerce(TaskPriority, changes["priority"], "priority")
        if "assigned_client_id" in changes:
            changes["assigned_client_id"] = self._validate_client(changes["assigned_client_id"])
        if "due_date" in changes:
            changes["due_date"] = _coerce_due_date(changes["due_date"])
        if "category_id" in changes:
            changes["category_id"] = self._validate_category(changes["category_id"])
        try:
            updated = task.apply_updates(changes, self._now())
        except KeyError as exc:
            raise ValidationError(str(exc.args[0])) from None
        if updated == task:
            return task

        self.tasks.replace(updated)
        changed = sorted(
            name for name in changes
            if name not in ("status", "assigned_client_id") and getattr(task, name) != getattr(updated, name)
        )
        if changed:
            self._log(task.id, ActivityType.UPDATED, f'Task "{updated.title}" updated', {"fields": changed})
        if updated.assigned_client_id != task.assigned_client_id:
            self._log_assignment(task, updated)
        if updated.status != task.status:
            self._log_status_change(task, updated)
        logger.info("Updated task %s", task.id)
        return self._persist(updated, self.tasks, self.activities)

    def delete_task(self, task_id: str) -> Task:
        """Delete a task with its subtasks and history, keeping one "deleted" entry."""
        self._load()
        task = self.tasks.require(task_id)
        self.tasks.remove(task_id)
        dropped_subtasks = self.subtasks.remove_where(lambda s: s.parent_task_id == task_id)
        self.activities.remove_where(lambda a: a.task_id == task_id)
        self._log(
            task.id,
            ActivityType.DELETED,
            f'Task "{task.title}" deleted',
            {"title": task.title, "subtasks": dropped_subtasks},
        )
        logger.info("Deleted task %s (%d subtasks)", task_id, dropped_subtasks)
        return self._persist(task, self.tasks, self.subtasks, self.activities)

    def _log_assignment(self, before: Task, after: Task) -> None:
        if after.assigned_client_id:
            self._log(
                after.id,
                ActivityType.ASSIGNED,
                f"Assigned to {self.client_name(after.assigned_client_id)}",
                {"clientId": after.assigned_client_id, "previousClientId": before.assigned_client_id},
            )
        else:
            self._log(
                after.id,
                ActivityType.UNASSIGNED,
                f"Unassigned from {self.client_name(before.assigned_client_id)}",
                {"previousClientId": before.assigned_client_id},
            )

    def assign_task(self, task_id: str, client_id: Optional[str]) -> Task:
        """Assign to a client, or unassign when ``client_id`` is empty."""
        self._load()
        task = self.tasks.require(task_id)
        client_id = self._validate_client(client_id)
        if client_id == task.assigned_client_id:
            return task
        updated = task.assign_to(client_id) if client_id else task.unassign()
        self.tasks.replace(updated)
        self._log_assignment(task, updated)
        logger.info("Task %s assigned to %s", task_id, client_id or "nobody")
        return self._persist(updated, self.tasks, self.activities)

    def set_task_status(self, task_id: str, status: Any) -> Task:
        self._load()
        return self._change_status(self.tasks.require(task_id), status)

    # ---------------- categories ----------------

    def create_category(self, name: str, color: str = "#3498db", description: str = "") -> Category:
        self._load()
        category = Category(
            id=generate_unique_id("category"),
            name=_require_text(name, "Category name"),
            color=color or "#3498db",
            description=(description or "").strip(),
            created_at=self._now(),
        )
        self.categories.add(category)
        logger.info("Created category %s", category.name)
        return self._persist(category, self.categories)

    def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Category:
        self._load()
        category = self.categories.require(category_id)
        changes: Dict[str, Any] = {}
        if name is not None:
            changes["name"] = _require_text(name, "Category name")
        if color:
            changes["color"] = color
        if description is not None:
            changes["description"] = description.strip()
        updated = replace(category, **changes)
        self.categories.replace(updated)
        return self._persist(updated, self.categories)

    def delete_category(self, category_id: str) -> Category:
        """Delete a category; its tasks become uncategorised."""
        self._load()
        category = self.categories.require(category_id)
        self.categories.remove(category_id)
        for task in self.tasks.all():
            if task.category_id == category_id:
                self.tasks.replace(replace(task, category_id=None))
                self._log(
                    task.id,
                    ActivityType.UPDATED,
                    f'Category "{category.name}" removed',
                    {"fields": ["category_id"]},
                )
        logger.info("Deleted category %s", category.name)
        return self._persist(category, self.categories, self.tasks, self.activities)

    # ---------------- subtasks ----------------

    def add_subtask(self, task_id: str, title: str, estimated_hours: float = 0.0) -> Subtask:
        self._load()
        task = self.tasks.require(task_id)
        hours = float(estimated_hours or 0)
        if hours < 0:
            raise ValidationError("Estimated hours cannot be negative")
        subtask = Subtask(
            id=generate_unique_id("subtask"),
            parent_task_id=task.id,
            title=_require_text(title, "Subtask title"),
            estimated_hours=hours,
            created_at=self._now(),
        )
        self.subtasks.add(subtask)
        self._log(task.id, ActivityType.UPDATED, f'Subtask "{subtask.title}" added', {"subtaskId": subtask.id})
        return self._persist(subtask, self.subtasks, self.activities)

    def toggle_subtask(self, subtask_id: str) -> Subtask:
        self._load()
        return self._toggle_subtask(self.subtasks.require(subtask_id))

    def delete_subtask(self, subtask_id: str) -> Subtask:
        self._load()
        subtask = self.subtasks.require(subtask_id)
        self.subtasks.remove(subtask_id)
        self._log(
            subtask.parent_task_id,
            ActivityType.UPDATED,
            f'Subtask "{subtask.title}" removed',
            {"subtaskId": subtask.id},
        )
        return self._persist(subtask, self.subtasks, self.activities)

    def subtask_stats(self, task_id: str) -> SubtaskStats:
        return subtask_stats(self.subtasks.for_task(task_id))

    # ---------------- activity feed ----------------

    def task_activities(self, task_id: str) -> List[Activity]:
        return self.activities.for_task(task_id)

    def recent_activities(self, count: int = 10) -> List[Activity]:
        return self.activities.recent(count)


class ClientViewModel(_TaskViewModel):
    """The logged-in client's own tasks. Nothing outside that scope is reachable."""

    @property
    def viewer_scope(self) -> str:
        user = self.auth.current_user
        # an empty scope matches no task
        return user.id if user is not None and user.is_client else ""

    def _scoped(self, task_id: str) -> Task:
        task = self.tasks.require(task_id)
        scope = self.viewer_scope
        if not scope or task.assigned_client_id != scope:
            logger.warning("Client %s refused access to task %s", self.viewer_id, task_id)
            raise ScopeViolationError(task_id, self.viewer_id)
        return task

    def my_tasks(self) -> List[Task]:
        return scope_tasks(self.tasks.all(), self.viewer_scope)

    def get_task(self, task_id: str) -> Task:
        return self._scoped(task_id)

    def get_task_details(self, task_id: str) -> Dict[str, Any]:
        task = self._scoped(task_id)
        now = self._now()
        subtasks = self.subtasks.for_task(task.id)
        category = self.categories.get(task.category_id)
        return {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "status": task.status.value,
            "priority": task.priority.value,
            "due_date": task.due_date,
            "created_at": task.created_at,
            "completed_at": task.completed_at,
            "category": category.name if category else None,
            "is_overdue": task.is_overdue(now),
            "is_completed": task.is_completed,
            "subtasks": subtasks,
            "subtask_stats": subtask_stats(subtasks),
        }

    def toggle_task_status(self, task_id: str) -> Task:
        self._load()
        task = self._scoped(task_id)
        target = TaskStatus.PENDING if task.is_completed else TaskStatus.COMPLETED
        return self._change_status(task, target)

    def set_task_status(self, task_id: str, status: Any) -> Task:
        self._load()
        return self._change_status(self._scoped(task_id), status)

    def toggle_subtask(self, subtask_id: str) -> Subtask:
        self._load()
        subtask = self.subtasks.require(subtask_id)
        self._scoped(subtask.parent_task_id)
        return self._toggle_subtask(subtask)

    def notifications(self) -> Dict[str, Any]:
        """Overdue tasks (high priority) and open tasks due today (medium)."""
        now = self._now()
        items: List[Dict[str, Any]] = []
        mine = self.my_tasks()
        for task in mine:
            if task.is_overdue(now):
                items.append({
                    "type": "overdue",
                    "message": f'Task "{task.title}" is overdue!',
                    "task_id": task.id,
                    "priority": "high",
                })
        for task in mine:
            if task.due_date is not None and not task.is_completed and task.due_date.date() == now.date():
                items.append({
                    "type": "due_today",
                    "message": f'Task "{task.title}" is due today!',
                    "task_id": task.id,
                    "priority": "medium",
                })
        return {"unread": len(items), "items": items}
