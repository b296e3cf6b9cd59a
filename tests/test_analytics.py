from datetime import timedelta

from conftest import NOW, make_task

from taskboard import analytics
from taskboard.models import TaskPriority, TaskStatus, default_users


def test_completion_stats_empty():
    stats = analytics.completion_stats([])
    assert stats["completion_rate"] == 0.0
    assert stats["completion_rate_percentage"] == "0%"


def test_completion_stats(sample_tasks):
    stats = analytics.completion_stats(sample_tasks)
    assert stats["total_tasks"] == 4
    assert stats["completed_tasks"] == 1
    assert stats["pending_tasks"] == 3
    assert stats["completion_rate_percentage"] == "25%"


def test_client_performance(sample_tasks):
    rows = analytics.client_performance(sample_tasks, default_users(NOW), NOW)
    by_id = {r["client_id"]: r for r in rows}
    assert list(by_id) == ["client_001", "client_002", "client_003"]
    assert by_id["client_001"]["total_assigned_tasks"] == 2
    assert by_id["client_001"]["completed_tasks"] == 1
    assert by_id["client_001"]["completion_rate"] == 50
    assert by_id["client_001"]["overdue_tasks"] == 1
    assert by_id["client_003"]["total_assigned_tasks"] == 0
    assert by_id["client_003"]["completion_rate"] == 0


def test_distributions(sample_tasks):
    assert analytics.priority_distribution(sample_tasks) == {"high": 1, "medium": 2, "low": 1}
    assert analytics.status_distribution(sample_tasks) == {"pending": 2, "in_progress": 1, "completed": 1}
    assert analytics.priority_distribution([]) == {"high": 0, "medium": 0, "low": 0}


def test_overdue_stats(sample_tasks):
    stats = analytics.overdue_stats(sample_tasks, NOW)
    assert stats["total_overdue"] == 1
    assert stats["overdue_in_progress"] == 1
    assert stats["overdue_pending"] == 0
    assert stats["by_priority"]["high"] == 1


def test_time_analytics():
    tasks = [
        make_task(1, status=TaskStatus.COMPLETED, created_at=NOW - timedelta(days=2), completed_at=NOW),
        make_task(2, status=TaskStatus.COMPLETED, created_at=NOW - timedelta(hours=12), completed_at=NOW),
        make_task(3),
    ]
    stats = analytics.time_analytics(tasks)
    assert stats["tasks_completed"] == 2
    assert stats["average_completion_days"] == 1.25
    assert stats["fastest_completion"] == 0.5
    assert stats["slowest_completion"] == 2.0


def test_time_analytics_without_completed_tasks():
    assert analytics.time_analytics([make_task(1)]) == {
        "tasks_completed": 0,
        "average_completion_days": 0.0,
        "fastest_completion": 0.0,
        "slowest_completion": 0.0,
    }


def test_productivity_trend_window():
    tasks = [
        make_task(1, created_at=NOW),
        make_task(2, created_at=NOW - timedelta(days=2), status=TaskStatus.COMPLETED, completed_at=NOW),
        make_task(3, created_at=NOW - timedelta(days=40)),
    ]
    trend = analytics.productivity_trend(tasks, days=3, today=NOW.date())
    assert [d["date"] for d in trend] == ["2024-05-13", "2024-05-14", "2024-05-15"]
    assert trend[0] == {"date": "2024-05-13", "created": 1, "completed": 0}
    assert trend[1] == {"date": "2024-05-14", "created": 0, "completed": 0}
    assert trend[2] == {"date": "2024-05-15", "created": 1, "completed": 1}


def test_dashboard_summary_keys(sample_tasks):
    summary = analytics.dashboard_summary(sample_tasks, default_users(NOW), NOW, trend_days=7)
    assert set(summary) == {
        "completion", "status", "priority", "overdue", "time_analytics", "client_performance", "productivity",
    }
    assert len(summary["productivity"]) == 7
    assert summary["priority"]["high"] == 1


def test_priority_distribution_counts_every_priority():
    tasks = [make_task(i, priority=p) for i, p in enumerate(TaskPriority)]
    assert sum(analytics.priority_distribution(tasks).values()) == 3
