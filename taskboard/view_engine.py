"""Derived view computation: scope -> filter -> search -> sort -> count.

Both dashboards render the output of ``derive_view``; the admin one with the
"all" scope, a client with their own id as scope. Scope is applied first and
nothing else can widen it.

The functions here are pure. They never mutate their input and never raise
for empty input; a due date that can't be read as a timestamp is treated as
"no due date" so that sorting is defined for every task.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Task, TaskStatus
from .utils import parse_timestamp, percentage, utcnow

ALL = "all"
UNASSIGNED = "unassigned"

STATUS_FILTERS = (ALL,) + tuple(s.value for s in TaskStatus)


class SortPolicy(str, Enum):
    ADMIN_DEFAULT = "admin-default"
    CLIENT_DEFAULT = "client-default"


@dataclass(frozen=True)
class TaskCounts:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0
    # only reported for the admin ("all") scope
    unassigned: Optional[int] = None
    completion_rate: int = 0

    def to_dict(self) -> Dict[str, int]:
        out = {
            "total": self.total,
            "pending": self.pending,
            "inProgress": self.in_progress,
            "completed": self.completed,
            "overdue": self.overdue,
            "completionRate": self.completion_rate,
        }
        if self.unassigned is not None:
            out["unassigned"] = self.unassigned
        return out


@dataclass(frozen=True)
class DerivedView:
    tasks: Tuple[Task, ...]
    counts: TaskCounts

    def to_dict(self) -> Dict[str, Any]:
        return {"tasks": [t.to_record() for t in self.tasks], "counts": self.counts.to_dict()}


def _status_value(task: Task) -> str:
    status = task.status
    return status.value if isinstance(status, TaskStatus) else str(status)


def _due(task: Task) -> Optional[datetime]:
    return parse_timestamp(task.due_date)


def _created_ts(task: Task) -> float:
    created = parse_timestamp(task.created_at)
    return created.timestamp() if created else 0.0


def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    """Due date passed and not completed. No due date is never overdue."""
    due = _due(task)
    if due is None or _status_value(task) == TaskStatus.COMPLETED.value:
        return False
    return due < (now or utcnow())


def completion_rate(completed: int, total: int) -> int:
    return percentage(completed, total)


# ---------------- pipeline steps ----------------

def scope_tasks(tasks: Iterable[Task], viewer_scope: Optional[str] = ALL) -> List[Task]:
    if viewer_scope == ALL:
        return list(tasks)
    # no client id, no tasks
    if not viewer_scope:
        return []
    return [t for t in tasks if t.assigned_client_id == viewer_scope]


def filter_by_client(tasks: Iterable[Task], client_filter: str = ALL) -> List[Task]:
    if client_filter == ALL:
        return list(tasks)
    if client_filter == UNASSIGNED:
        return [t for t in tasks if not t.assigned_client_id]
    return [t for t in tasks if t.assigned_client_id == client_filter]


def filter_by_status(tasks: Iterable[Task], status_filter: str = ALL) -> List[Task]:
    if status_filter == ALL:
        return list(tasks)
    return [t for t in tasks if _status_value(t) == status_filter]


def search_tasks(tasks: Iterable[Task], search_text: str = "") -> List[Task]:
    if not search_text:
        return list(tasks)
    query = search_text.lower()
    return [
        t for t in tasks
        if query in (t.title or "").lower() or query in (t.description or "").lower()
    ]


def sort_tasks(tasks: Iterable[Task], policy: SortPolicy, now: Optional[datetime] = None) -> List[Task]:
    items = list(tasks)
    if SortPolicy(policy) == SortPolicy.ADMIN_DEFAULT:
        # reverse=True keeps equal keys in input order
        return sorted(items, key=_created_ts, reverse=True)

    now = now or utcnow()

    def client_key(task: Task) -> Tuple[int, int, float, float]:
        due = _due(task)
        if due is None:
            return (1, 1, 0.0, -_created_ts(task))
        return (0 if is_overdue(task, now) else 1, 0, due.timestamp(), 0.0)

    return sorted(items, key=client_key)


def count_tasks(
    scoped: Sequence[Task],
    *,
    include_unassigned: bool = True,
    now: Optional[datetime] = None,
) -> TaskCounts:
    now = now or utcnow()
    statuses = [_status_value(t) for t in scoped]
    completed = statuses.count(TaskStatus.COMPLETED.value)
    return TaskCounts(
        total=len(scoped),
        pending=statuses.count(TaskStatus.PENDING.value),
        in_progress=statuses.count(TaskStatus.IN_PROGRESS.value),
        completed=completed,
        overdue=sum(1 for t in scoped if is_overdue(t, now)),
        unassigned=sum(1 for t in scoped if not t.assigned_client_id) if include_unassigned else None,
        completion_rate=completion_rate(completed, len(scoped)),
    )


def derive_view(
    all_tasks: Iterable[Task],
    *,
    viewer_scope: Optional[str] = ALL,
    status_filter: str = ALL,
    client_filter: str = ALL,
    search_text: str = "",
    sort_policy: Optional[SortPolicy] = None,
    now: Optional[datetime] = None,
) -> DerivedView:
    """Compute what a viewer sees, in what order, plus counts over their scope.

    Args:
        all_tasks: The full task collection, in stored order.
        viewer_scope: ``"all"`` for an admin, otherwise a client id. An
            empty scope sees nothing.
        status_filter: ``"all"`` or a task status value.
        client_filter: ``"all"``, ``"unassigned"`` or a client id.
        search_text: Case-insensitive substring of title or description.
        sort_policy: Defaults to admin-default for the "all" scope and
            client-default otherwise.
        now: Reference time for the overdue checks.

    Returns:
        The ordered tasks and the counts over the scoped set (before the
        client, status and search filters).
    """
    now = now or utcnow()
    if sort_policy is None:
        sort_policy = SortPolicy.ADMIN_DEFAULT if viewer_scope == ALL else SortPolicy.CLIENT_DEFAULT

    scoped = scope_tasks(all_tasks, viewer_scope)
    visible = filter_by_client(scoped, client_filter)
    visible = filter_by_status(visible, status_filter)
    visible = search_tasks(visible, search_text)
    ordered = sort_tasks(visible, sort_policy, now)

    counts = count_tasks(scoped, include_unassigned=viewer_scope == ALL, now=now)
    return DerivedView(tasks=tuple(ordered), counts=counts)
