"""Dashboard analytics over a (scoped) task set."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import Task, TaskPriority, TaskStatus, User
from .utils import parse_timestamp, percentage, utcnow
from .view_engine import is_overdue


def completion_stats(tasks: Sequence[Task]) -> Dict[str, Any]:
    total = len(tasks)
    if total == 0:
        return {
            "total_tasks": 0,
            "completed_tasks": 0,
            "pending_tasks": 0,
            "completion_rate": 0.0,
            "completion_rate_percentage": "0%",
        }
    completed = sum(1 for t in tasks if t.is_completed)
    return {
        "total_tasks": total,
        "completed_tasks": completed,
        "pending_tasks": total - completed,
        "completion_rate": round(completed / total, 2),
        "completion_rate_percentage": f"{percentage(completed, total)}%",
    }


def client_performance(
    tasks: Sequence[Task],
    users: Iterable[User],
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Per-client totals, in the order the clients are listed."""
    now = now or utcnow()
    rows: List[Dict[str, Any]] = []
    for client in (u for u in users if u.is_client):
        mine = [t for t in tasks if t.assigned_client_id == client.id]
        completed = sum(1 for t in mine if t.is_completed)
        rows.append({
            "client_id": client.id,
            "client_name": client.name,
            "total_assigned_tasks": len(mine),
            "completed_tasks": completed,
            "pending_tasks": len(mine) - completed,
            "completion_rate": percentage(completed, len(mine)),
            "overdue_tasks": sum(1 for t in mine if is_overdue(t, now)),
        })
    return rows


def priority_distribution(tasks: Iterable[Task]) -> Dict[str, int]:
    dist = {p.value: 0 for p in (TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW)}
    for t in tasks:
        dist[t.priority.value] = dist.get(t.priority.value, 0) + 1
    return dist


def status_distribution(tasks: Iterable[Task]) -> Dict[str, int]:
    dist = {s.value: 0 for s in TaskStatus}
    for t in tasks:
        dist[t.status.value] = dist.get(t.status.value, 0) + 1
    return dist


def overdue_stats(tasks: Iterable[Task], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    overdue = [t for t in tasks if is_overdue(t, now)]
    return {
        "total_overdue": len(overdue),
        "overdue_pending": sum(1 for t in overdue if t.status == TaskStatus.PENDING),
        "overdue_in_progress": sum(1 for t in overdue if t.status == TaskStatus.IN_PROGRESS),
        "by_priority": priority_distribution(overdue),
    }


def time_analytics(tasks: Iterable[Task]) -> Dict[str, Any]:
    """Days from creation to completion over the completed tasks."""
    durations: List[float] = []
    for t in tasks:
        done = parse_timestamp(t.completed_at)
        created = parse_timestamp(t.created_at)
        if done is None or created is None:
            continue
        durations.append((done - created).total_seconds() / 86400.0)

    if not durations:
        return {
            "tasks_completed": 0,
            "average_completion_days": 0.0,
            "fastest_completion": 0.0,
            "slowest_completion": 0.0,
        }
    return {
        "tasks_completed": len(durations),
        "average_completion_days": round(sum(durations) / len(durations), 2),
        "fastest_completion": round(min(durations), 2),
        "slowest_completion": round(max(durations), 2),
    }


def productivity_trend(
    tasks: Iterable[Task],
    days: int = 30,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Created/completed counts per UTC calendar day, oldest first, zero filled."""
    today = today or utcnow().date()
    window = [today - timedelta(days=offset) for offset in range(max(0, days) - 1, -1, -1)]
    buckets: Dict[date, Dict[str, int]] = {d: {"created": 0, "completed": 0} for d in window}

    for t in tasks:
        created = parse_timestamp(t.created_at)
        if created is not None and created.date() in buckets:
            buckets[created.date()]["created"] += 1
        done = parse_timestamp(t.completed_at)
        if done is not None and done.date() in buckets:
            buckets[done.date()]["completed"] += 1

    return [{"date": d.isoformat(), **buckets[d]} for d in window]


def dashboard_summary(
    tasks: Sequence[Task],
    users: Iterable[User],
    now: Optional[datetime] = None,
    trend_days: int = 7,
) -> Dict[str, Any]:
    now = now or utcnow()
    return {
        "completion": completion_stats(tasks),
        "status": status_distribution(tasks),
        "priority": priority_distribution(tasks),
        "overdue": overdue_stats(tasks, now),
        "time_analytics": time_analytics(tasks),
        "client_performance": client_performance(tasks, list(users), now),
        "productivity": productivity_trend(tasks, trend_days, today=now.date()),
    }
