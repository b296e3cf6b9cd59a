import plotly.express as px
import streamlit as st

from taskboard import ui
from taskboard.analytics import dashboard_summary
from taskboard.config import get_config
from taskboard.frames import client_performance_to_df, distribution_to_df, trend_to_df
from taskboard.theme import PRIORITY_COLORS, STATUS_COLORS

ui.page_setup("Analytics", "📊")
ui.require_role("admin")

vm = ui.get_admin_vm()
vm.refresh()
ui.unsaved_warning(vm)
auth = ui.get_auth()

st.title("📊 Analytics")

trend_days = st.slider("Trend window (days)", min_value=7, max_value=90, value=get_config().trend_days, step=1)
summary = dashboard_summary(vm.tasks.all(), auth.all_users(), trend_days=trend_days)

completion = summary["completion"]
overdue = summary["overdue"]
timing = summary["time_analytics"]

k = st.columns(4)
k[0].metric("Completion", completion["completion_rate_percentage"], f"{completion['completed_tasks']}/{completion['total_tasks']} tasks")
k[1].metric("Overdue", overdue["total_overdue"])
k[2].metric("Avg. days to complete", timing["average_completion_days"])
k[3].metric("Fastest / slowest", f"{timing['fastest_completion']} / {timing['slowest_completion']}")

c1, c2 = st.columns(2)
with c1:
    status_df = distribution_to_df(summary["status"], "status")
    fig = px.pie(status_df, names="status", values="count", title="Tasks by status", hole=0.45,
                 color="status", color_discrete_map=STATUS_COLORS)
    fig.update_layout(margin=dict(l=6, r=6, t=40, b=10), height=320)
    st.plotly_chart(fig, use_container_width=True)
with c2:
    prio_df = distribution_to_df(summary["priority"], "priority")
    fig = px.bar(prio_df, x="priority", y="count", title="Tasks by priority",
                 color="priority", color_discrete_map=PRIORITY_COLORS)
    fig.update_layout(margin=dict(l=6, r=6, t=40, b=10), height=320, showlegend=False)
    st.plotly_chart(fig, use_container_width=True)

trend_df = trend_to_df(summary["productivity"])
fig = px.line(trend_df, x="date", y="count", color="series", markers=True,
              title=f"Created vs completed (last {trend_days}d)")
fig.update_layout(margin=dict(l=6, r=6, t=40, b=10), height=340, legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1))
st.plotly_chart(fig, use_container_width=True)

st.subheader("Client performance")
perf_df = client_performance_to_df(summary["client_performance"])
if perf_df.empty:
    st.info("No clients yet.")
else:
    fig = px.bar(perf_df, x="completion_rate", y="client_name", orientation="h", range_x=[0, 100],
                 title="Completion rate by client (%)", color="completion_rate", color_continuous_scale="Blues")
    fig.update_layout(margin=dict(l=6, r=6, t=40, b=10), height=300)
    st.plotly_chart(fig, use_container_width=True)
    st.dataframe(perf_df, use_container_width=True, hide_index=True)

st.subheader("Overdue by priority")
st.dataframe(distribution_to_df(overdue["by_priority"], "priority"), use_container_width=True, hide_index=True)
