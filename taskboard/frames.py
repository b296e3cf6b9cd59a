"""pandas tables for the dashboards."""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd

from .models import Task
from .utils import utcnow

TASK_COLUMNS = ["id", "title", "status", "priority", "client", "due_date", "created_at", "completed_at", "overdue"]


def tasks_to_df(
    tasks: Iterable[Task],
    client_name: Optional[Callable[[Optional[str]], str]] = None,
    now=None,
) -> pd.DataFrame:
    now = now or utcnow()
    rows = [
        {
            "id": t.id,
            "title": t.title,
            "status": t.status.value,
            "priority": t.priority.value,
            "client": client_name(t.assigned_client_id) if client_name else t.assigned_client_id,
            "due_date": t.due_date,
            "created_at": t.created_at,
            "completed_at": t.completed_at,
            "overdue": t.is_overdue(now),
        }
        for t in tasks
    ]
    if not rows:
        return pd.DataFrame(columns=TASK_COLUMNS)
    df = pd.DataFrame(rows, columns=TASK_COLUMNS)
    df["due_date"] = pd.to_datetime(df["due_date"], errors="coerce", utc=True).dt.date
    return df


def distribution_to_df(dist: Dict[str, int], label: str) -> pd.DataFrame:
    return pd.DataFrame({label: list(dist.keys()), "count": list(dist.values())})


def trend_to_df(trend: List[Dict[str, Any]]) -> pd.DataFrame:
    """Long format (date, series, count) for a multi-line chart."""
    if not trend:
        return pd.DataFrame(columns=["date", "series", "count"])
    wide = pd.DataFrame(trend)
    wide["date"] = pd.to_datetime(wide["date"])
    return wide.melt(id_vars="date", value_vars=["created", "completed"], var_name="series", value_name="count")


def client_performance_to_df(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    columns = ["client_name", "total_assigned_tasks", "completed_tasks", "pending_tasks", "overdue_tasks", "completion_rate"]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows)[columns].sort_values("completion_rate", ascending=False, kind="stable")
