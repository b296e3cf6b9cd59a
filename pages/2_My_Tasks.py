import streamlit as st

from taskboard import ui
from taskboard.models import TaskStatus
from taskboard.utils import format_date
from taskboard.view_engine import STATUS_FILTERS

ui.page_setup("My Tasks", "📝")
ui.require_role("client")

vm = ui.get_client_vm()
user = ui.get_auth().current_user

st.title(f"📝 {user.name}'s tasks")

data = vm.refresh()
ui.unsaved_warning(vm)
counts = data.counts

k = st.columns(5)
k[0].metric("My tasks", counts.total)
k[1].metric("Pending", counts.pending)
k[2].metric("In progress", counts.in_progress)
k[3].metric("Completed", counts.completed)
k[4].metric("Overdue", counts.overdue)
st.progress(counts.completion_rate / 100, text=f"{counts.completion_rate}% complete")

notes = vm.notifications()
if notes["unread"]:
    with st.expander(f"🔔 Notifications ({notes['unread']})", expanded=True):
        for item in notes["items"]:
            if item["priority"] == "high":
                st.error(item["message"])
            else:
                st.warning(item["message"])

f1, f2 = st.columns([1, 3])
status_choice = f1.selectbox("Status", STATUS_FILTERS, index=STATUS_FILTERS.index(vm.status_filter))
search = f2.text_input("Search", value=vm.search, placeholder="Title or description")
if status_choice != vm.status_filter:
    vm.set_status_filter(status_choice)
if search != vm.search:
    vm.set_search(search)

data = vm.get_view_data()
if not data.tasks:
    st.info("No tasks match the current filters." if counts.total else "No tasks are assigned to you yet.")

statuses = [s.value for s in TaskStatus]
for task in data.tasks:
    ui.task_card(task, task.priority.value.capitalize() + " priority")
    b1, b2, b3 = st.columns([1, 1, 2])
    label = "↩️ Reopen" if task.is_completed else "✅ Complete"
    if b1.button(label, key=f"toggle-{task.id}", use_container_width=True):
        ui.run_command(vm.toggle_task_status, task.id, success="Task updated")
        st.rerun()
    new_status = b2.selectbox(
        "Status", statuses, index=statuses.index(task.status.value), key=f"status-{task.id}", label_visibility="collapsed"
    )
    if new_status != task.status.value:
        ui.run_command(vm.set_task_status, task.id, new_status, success="Status updated")
        st.rerun()

    with st.expander("Details"):
        details = ui.run_command(vm.get_task_details, task.id)
        if details:
            st.write(details["description"] or "No description.")
            d1, d2, d3 = st.columns(3)
            d1.caption(f"Created {format_date(details['created_at'])}")
            d2.caption(f"Due {format_date(details['due_date'])}")
            d3.caption(f"Completed {format_date(details['completed_at'])}")
            if details["category"]:
                st.caption(f"Category: {details['category']}")
            stats = details["subtask_stats"]
            if stats.total:
                st.progress(stats.completion_percentage / 100, text=f"Subtasks {stats.completed}/{stats.total}")
            for sub in details["subtasks"]:
                done = st.checkbox(sub.title, value=sub.completed, key=f"sub-{sub.id}")
                if done != sub.completed:
                    ui.run_command(vm.toggle_subtask, sub.id)
                    st.rerun()
