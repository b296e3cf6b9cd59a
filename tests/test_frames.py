from datetime import date, timedelta

from conftest import NOW

from taskboard import frames
from taskboard.analytics import client_performance, productivity_trend
from taskboard.models import default_users


def test_tasks_to_df(sample_tasks):
    names = {"client_001": "John Doe", "client_002": "Jane Smith"}
    df = frames.tasks_to_df(sample_tasks, lambda c: names.get(c, "Unassigned"), now=NOW)
    assert list(df.columns) == frames.TASK_COLUMNS
    assert df["client"].tolist() == ["John Doe", "John Doe", "Jane Smith", "Unassigned"]
    assert df["overdue"].tolist() == [True, False, False, False]
    assert df.loc[0, "due_date"] == (NOW - timedelta(days=1)).date()


def test_tasks_to_df_empty():
    df = frames.tasks_to_df([])
    assert df.empty
    assert list(df.columns) == frames.TASK_COLUMNS


def test_trend_to_df_long_format(sample_tasks):
    trend = productivity_trend(sample_tasks, days=3, today=date(2024, 5, 15))
    df = frames.trend_to_df(trend)
    assert len(df) == 6
    assert set(df["series"]) == {"created", "completed"}


def test_client_performance_sorted(sample_tasks):
    df = frames.client_performance_to_df(client_performance(sample_tasks, default_users(NOW), NOW))
    assert df["client_name"].tolist()[0] == "John Doe"
    assert frames.client_performance_to_df([]).empty


def test_distribution_to_df():
    df = frames.distribution_to_df({"high": 2, "low": 1}, "priority")
    assert df.to_dict("records") == [{"priority": "high", "count": 2}, {"priority": "low", "count": 1}]
