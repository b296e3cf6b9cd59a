from datetime import timedelta

from conftest import NOW, make_task

from taskboard.models import TaskStatus
from taskboard.view_engine import (
    ALL,
    UNASSIGNED,
    SortPolicy,
    completion_rate,
    count_tasks,
    derive_view,
    is_overdue,
    scope_tasks,
    sort_tasks,
)


def ids(tasks):
    return [t.id for t in tasks]


def test_admin_sort_newest_first_with_counts():
    tasks = [
        make_task(1, status=TaskStatus.PENDING, created_at=NOW - timedelta(hours=2)),
        make_task(2, status=TaskStatus.COMPLETED, created_at=NOW - timedelta(hours=1)),
    ]
    view = derive_view(tasks, now=NOW)
    assert ids(view.tasks) == ["2", "1"]
    assert view.counts.total == 2
    assert view.counts.pending == 1
    assert view.counts.completed == 1
    assert view.counts.completion_rate == 50


def test_client_scope_hides_other_clients_tasks():
    tasks = [make_task(1, assigned_client_id="C1"), make_task(2, assigned_client_id="C2")]
    view = derive_view(tasks, viewer_scope="C1", now=NOW)
    assert ids(view.tasks) == ["1"]
    assert view.counts.total == 1
    assert view.counts.unassigned is None


def test_client_filter_cannot_widen_scope():
    tasks = [make_task(1, assigned_client_id="C1"), make_task(2, assigned_client_id="C2")]
    view = derive_view(tasks, viewer_scope="C1", client_filter="C2", now=NOW)
    assert view.tasks == ()


def test_empty_scope_sees_nothing():
    tasks = [make_task(1, assigned_client_id=""), make_task(2), make_task(3, assigned_client_id="C1")]
    for scope in ("", None):
        view = derive_view(tasks, viewer_scope=scope, now=NOW)
        assert view.tasks == ()
        assert view.counts.total == 0


def test_search_is_case_insensitive():
    tasks = [make_task(1, title="Fix login bug"), make_task(2, title="Update README")]
    assert ids(derive_view(tasks, search_text="login", now=NOW).tasks) == ["1"]
    assert ids(derive_view(tasks, search_text="LOGIN", now=NOW).tasks) == ["1"]


def test_search_matches_description():
    tasks = [make_task(1, title="Chores", description="water the plants"), make_task(2)]
    assert ids(derive_view(tasks, search_text="Plants", now=NOW).tasks) == ["1"]


def test_empty_task_set():
    view = derive_view([], now=NOW)
    assert view.tasks == ()
    counts = view.counts.to_dict()
    assert counts == {
        "total": 0,
        "pending": 0,
        "inProgress": 0,
        "completed": 0,
        "overdue": 0,
        "completionRate": 0,
        "unassigned": 0,
    }


def test_overdue_cleared_by_completion():
    task = make_task(1, due_date=NOW - timedelta(days=1), status=TaskStatus.IN_PROGRESS)
    assert derive_view([task], now=NOW).counts.overdue == 1

    done = task.with_status(TaskStatus.COMPLETED, NOW)
    assert done.completed_at == NOW
    assert derive_view([done], now=NOW).counts.overdue == 0


def test_counts_use_scoped_set_before_filters(sample_tasks):
    view = derive_view(sample_tasks, status_filter="completed", search_text="zzz", now=NOW)
    assert view.tasks == ()
    assert view.counts.total == 4
    assert view.counts.unassigned == 1
    assert view.counts.overdue == 1


def test_client_filter_unassigned(sample_tasks):
    view = derive_view(sample_tasks, client_filter=UNASSIGNED, now=NOW)
    assert ids(view.tasks) == ["4"]


def test_status_filter(sample_tasks):
    view = derive_view(sample_tasks, status_filter="pending", now=NOW)
    assert sorted(ids(view.tasks)) == ["3", "4"]


def test_admin_sort_is_stable_for_equal_timestamps():
    tasks = [make_task(i, created_at=NOW) for i in range(5)]
    assert ids(sort_tasks(tasks, SortPolicy.ADMIN_DEFAULT, NOW)) == ["0", "1", "2", "3", "4"]


def test_client_sort_overdue_then_due_then_no_due():
    tasks = [
        make_task("no-due-old", created_at=NOW - timedelta(days=5)),
        make_task("due-later", due_date=NOW + timedelta(days=5)),
        make_task("overdue", due_date=NOW - timedelta(days=1)),
        make_task("no-due-new", created_at=NOW - timedelta(days=1)),
        make_task("due-soon", due_date=NOW + timedelta(days=1)),
    ]
    ordered = sort_tasks(tasks, SortPolicy.CLIENT_DEFAULT, NOW)
    assert ids(ordered) == ["overdue", "due-soon", "due-later", "no-due-new", "no-due-old"]


def test_sort_policy_follows_scope():
    tasks = [
        make_task("a", assigned_client_id="C1", created_at=NOW - timedelta(days=2), due_date=NOW + timedelta(days=1)),
        make_task("b", assigned_client_id="C1", created_at=NOW - timedelta(days=1), due_date=NOW + timedelta(days=3)),
    ]
    assert ids(derive_view(tasks, now=NOW).tasks) == ["b", "a"]
    assert ids(derive_view(tasks, viewer_scope="C1", now=NOW).tasks) == ["a", "b"]


def test_is_overdue():
    assert is_overdue(make_task(1, due_date=NOW - timedelta(seconds=1)), NOW)
    assert not is_overdue(make_task(2, due_date=NOW + timedelta(seconds=1)), NOW)
    assert not is_overdue(make_task(3), NOW)
    assert not is_overdue(make_task(4, due_date=NOW - timedelta(days=1), status=TaskStatus.COMPLETED), NOW)


def test_completion_rate_bounds():
    assert completion_rate(0, 0) == 0
    assert completion_rate(1, 3) == 33
    assert completion_rate(2, 3) == 67
    assert completion_rate(1, 8) == 13
    assert completion_rate(5, 5) == 100
    for total in range(1, 12):
        for done in range(total + 1):
            assert 0 <= completion_rate(done, total) <= 100


def test_scoping_is_idempotent_and_narrowing(sample_tasks):
    for scope in (ALL, "client_001", "client_002", "nobody"):
        once = scope_tasks(sample_tasks, scope)
        assert scope_tasks(once, scope) == once
        assert all(t in sample_tasks for t in once)


def test_derive_view_does_not_mutate_input(sample_tasks):
    before = list(sample_tasks)
    derive_view(sample_tasks, status_filter="pending", search_text="task", now=NOW)
    assert sample_tasks == before


def test_count_tasks_without_unassigned(sample_tasks):
    counts = count_tasks(sample_tasks, include_unassigned=False, now=NOW)
    assert counts.unassigned is None
    assert "unassigned" not in counts.to_dict()
    assert counts.in_progress == 1
    assert counts.completion_rate == 25
