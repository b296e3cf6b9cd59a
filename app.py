import streamlit as st

from taskboard import ui
from taskboard.auth import set_login_state

ui.page_setup("Taskboard", "✅")

auth = ui.get_auth()
theme_service = ui.get_theme_service()

# Header
head_left, head_right = st.columns([4, 1])
with head_left:
    st.markdown('<div class="tb-header"><h1>Taskboard</h1></div>', unsafe_allow_html=True)
    st.caption("Admins create and assign tasks; clients work through the tasks assigned to them.")
with head_right:
    label = "☀️ Light mode" if theme_service.is_dark else "🌙 Dark mode"
    if st.button(label, use_container_width=True):
        theme_service.toggle()
        st.rerun()

if auth.is_authenticated:
    user = auth.current_user
    set_login_state(st.session_state, user)
    st.success(f"Logged in as **{user.name}** ({user.role.value})")

    c1, c2 = st.columns([3, 1])
    with c1:
        if auth.is_admin:
            st.page_link("pages/1_Admin_Dashboard.py", label="Open the admin dashboard", icon="🗂")
            st.page_link("pages/3_Analytics.py", label="Open analytics", icon="📊")
        else:
            st.page_link("pages/2_My_Tasks.py", label="Open my tasks", icon="📝")
    with c2:
        if st.button("Log out", use_container_width=True):
            ui.logout()
            st.rerun()
else:
    st.subheader("Choose a user to log in")
    users = auth.all_users()
    if not users:
        st.info("No users yet. Set TASKBOARD_SEED_DEFAULT_USERS=true to create the demo users.")
    cols = st.columns(max(1, min(4, len(users))))
    for i, user in enumerate(users):
        with cols[i % len(cols)]:
            with st.container(border=True):
                st.markdown(f"**{user.name}**")
                st.caption(f"{user.role.value} · {user.email or 'no email'}")
                if st.button("Log in", key=f"login-{user.id}", use_container_width=True):
                    if ui.login(user.id):
                        st.rerun()

with st.sidebar:
    st.header("Storage")
    info = ui.get_storage().storage_info()
    if info is None:
        st.error("Storage is not reachable.")
    else:
        st.caption(f"{info['total_size']:,} characters stored")
