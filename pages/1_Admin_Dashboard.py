import streamlit as st

from taskboard import ui
from taskboard.frames import tasks_to_df
from taskboard.models import TaskPriority, TaskStatus
from taskboard.utils import format_date
from taskboard.view_engine import ALL, STATUS_FILTERS, UNASSIGNED

ui.page_setup("Admin Dashboard", "🗂")
ui.require_role("admin")

vm = ui.get_admin_vm()
auth = ui.get_auth()

st.title("🗂 Admin Dashboard")

data = vm.refresh()
ui.unsaved_warning(vm)
counts = data.counts
if data.rejected:
    st.warning(
        "Some stored records could not be read and were skipped: "
        + "; ".join(f"{name}: {', '.join(ids)}" for name, ids in data.rejected.items())
    )

# KPI row
k = st.columns(6)
k[0].metric("Total", counts.total)
k[1].metric("Pending", counts.pending)
k[2].metric("In progress", counts.in_progress)
k[3].metric("Completed", counts.completed)
k[4].metric("Overdue", counts.overdue)
k[5].metric("Unassigned", counts.unassigned or 0)
st.progress(counts.completion_rate / 100, text=f"{counts.completion_rate}% complete")

client_ids = [c.id for c in data.clients]
category_ids = [c.id for c in data.categories]
category_names = {c.id: c.name for c in data.categories}

# Create
with st.expander("➕ New task", expanded=counts.total == 0):
    with st.form("create-task", clear_on_submit=True):
        title = st.text_input("Title")
        description = st.text_area("Description")
        f1, f2, f3, f4 = st.columns(4)
        client = f1.selectbox("Client", [""] + client_ids, format_func=lambda c: vm.client_name(c) if c else "Unassigned")
        priority = f2.selectbox("Priority", [p.value for p in TaskPriority], index=1)
        due = f3.date_input("Due date", value=None)
        category = f4.selectbox("Category", [""] + category_ids, format_func=lambda c: category_names.get(c, "None"))
        if st.form_submit_button("Create task"):
            if ui.run_command(
                vm.create_task,
                title,
                description=description,
                assigned_client_id=client or None,
                priority=priority,
                due_date=due,
                category_id=category or None,
                success="Task created",
            ):
                st.rerun()

# Filters
fc1, fc2, fc3, fc4 = st.columns([1, 1, 2, 1])
status_choice = fc1.selectbox("Status", STATUS_FILTERS, index=STATUS_FILTERS.index(vm.status_filter))
client_options = [ALL, UNASSIGNED] + client_ids
client_choice = fc2.selectbox(
    "Client",
    client_options,
    index=client_options.index(vm.client_filter) if vm.client_filter in client_options else 0,
    format_func=lambda c: {ALL: "All clients", UNASSIGNED: "Unassigned"}.get(c) or vm.client_name(c),
)
search = fc3.text_input("Search", value=vm.search, placeholder="Title or description")
with fc4:
    st.write("")
    if st.button("Clear filters", use_container_width=True):
        vm.clear_filters()
        st.rerun()

if status_choice != vm.status_filter:
    vm.set_status_filter(status_choice)
if client_choice != vm.client_filter:
    vm.set_client_filter(client_choice)
if search != vm.search:
    vm.set_search(search)

data = vm.get_view_data()

board_tab, table_tab, activity_tab, category_tab = st.tabs(["📋 Tasks", "📑 Table", "🕑 Activity", "🏷 Categories"])

with board_tab:
    if not data.tasks:
        st.info("No tasks match the current filters.")
    for task in data.tasks:
        subtitle = vm.client_name(task.assigned_client_id)
        if task.category_id:
            subtitle += f" · {category_names.get(task.category_id, 'Unknown category')}"
        ui.task_card(task, subtitle)
        a1, a2, a3 = st.columns([1, 1, 1])
        statuses = [s.value for s in TaskStatus]
        new_status = a1.selectbox(
            "Status", statuses, index=statuses.index(task.status.value), key=f"status-{task.id}", label_visibility="collapsed"
        )
        if new_status != task.status.value:
            ui.run_command(vm.set_task_status, task.id, new_status, success="Status updated")
            st.rerun()
        assign_options = [""] + client_ids
        current = task.assigned_client_id if task.assigned_client_id in client_ids else ""
        new_client = a2.selectbox(
            "Assign",
            assign_options,
            index=assign_options.index(current),
            key=f"assign-{task.id}",
            format_func=lambda c: vm.client_name(c) if c else "Unassigned",
            label_visibility="collapsed",
        )
        if new_client != current:
            ui.run_command(vm.assign_task, task.id, new_client or None, success="Assignment updated")
            st.rerun()
        if a3.button("🗑 Delete", key=f"delete-{task.id}", use_container_width=True):
            ui.run_command(vm.delete_task, task.id, success="Task deleted")
            st.rerun()

        with st.expander("Edit, subtasks and history"):
            with st.form(f"edit-{task.id}"):
                e_title = st.text_input("Title", value=task.title)
                e_desc = st.text_area("Description", value=task.description)
                e1, e2, e3 = st.columns(3)
                priorities = [p.value for p in TaskPriority]
                e_priority = e1.selectbox("Priority", priorities, index=priorities.index(task.priority.value))
                e_due = e2.date_input("Due date", value=task.due_date.date() if task.due_date else None)
                cat_options = [""] + category_ids
                e_cat = e3.selectbox(
                    "Category",
                    cat_options,
                    index=cat_options.index(task.category_id) if task.category_id in cat_options else 0,
                    format_func=lambda c: category_names.get(c, "None"),
                )
                if st.form_submit_button("Save changes"):
                    ui.run_command(
                        vm.update_task,
                        task.id,
                        title=e_title,
                        description=e_desc,
                        priority=e_priority,
                        due_date=e_due,
                        category_id=e_cat or None,
                        success="Task updated",
                    )
                    st.rerun()

            stats = vm.subtask_stats(task.id)
            st.markdown(f"**Subtasks** ({stats.completed}/{stats.total}, {stats.total_estimated_hours:g}h estimated)")
            for sub in vm.get_subtasks(task.id):
                s1, s2 = st.columns([5, 1])
                done = s1.checkbox(sub.title, value=sub.completed, key=f"sub-{sub.id}")
                if done != sub.completed:
                    ui.run_command(vm.toggle_subtask, sub.id)
                    st.rerun()
                if s2.button("✕", key=f"sub-del-{sub.id}"):
                    ui.run_command(vm.delete_subtask, sub.id)
                    st.rerun()
            with st.form(f"sub-add-{task.id}", clear_on_submit=True):
                n1, n2 = st.columns([4, 1])
                sub_title = n1.text_input("New subtask")
                sub_hours = n2.number_input("Hours", min_value=0.0, step=0.5)
                if st.form_submit_button("Add subtask"):
                    ui.run_command(vm.add_subtask, task.id, sub_title, sub_hours)
                    st.rerun()

            st.markdown("**History**")
            for act in vm.task_activities(task.id):
                who = auth.get_user(act.user_id)
                st.caption(f"{format_date(act.timestamp)} · {who.name if who else 'system'} · {act.description}")

with table_tab:
    df = tasks_to_df(data.tasks, vm.client_name)
    st.dataframe(df, use_container_width=True, hide_index=True)
    st.download_button("Download CSV", df.to_csv(index=False), file_name="tasks.csv", mime="text/csv")

with activity_tab:
    recent = vm.recent_activities(20)
    if not recent:
        st.info("No activity yet.")
    for act in recent:
        who = auth.get_user(act.user_id)
        st.write(f"**{act.type.value}** · {act.description} · {who.name if who else 'system'} · {format_date(act.timestamp)}")

with category_tab:
    for cat in data.categories:
        c1, c2, c3 = st.columns([3, 1, 1])
        c1.markdown(ui.badge(cat.name, cat.color) + f" {cat.description}", unsafe_allow_html=True)
        new_color = c2.color_picker("Color", value=cat.color, key=f"cat-color-{cat.id}", label_visibility="collapsed")
        if new_color != cat.color:
            ui.run_command(vm.update_category, cat.id, color=new_color)
            st.rerun()
        if c3.button("Delete", key=f"cat-del-{cat.id}"):
            ui.run_command(vm.delete_category, cat.id, success="Category deleted")
            st.rerun()
    with st.form("create-category", clear_on_submit=True):
        n1, n2 = st.columns([3, 1])
        cat_name = n1.text_input("Name")
        cat_color = n2.color_picker("Color", value="#3498db")
        cat_desc = st.text_input("Description")
        if st.form_submit_button("Add category"):
            ui.run_command(vm.create_category, cat_name, cat_color, cat_desc, success="Category created")
            st.rerun()
