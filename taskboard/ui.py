"""Streamlit glue shared by app.py and the pages.

Services live in ``st.session_state`` so each browser session has its own
login and view-model filter state; the storage service is shared.
"""
from __future__ import annotations

import html
from typing import Optional

import streamlit as st

from .auth import AuthService, is_logged_in, set_login_state
from .config import AppConfig, configure_logging, get_config
from .errors import PersistenceError, TaskboardError
from .models import Task
from .storage import StorageService
from .theme import PRIORITY_COLORS, STATUS_COLORS, ThemeService, set_theme
from .utils import format_date
from .viewmodels import AdminViewModel, ClientViewModel


@st.cache_resource(show_spinner=False)
def get_storage() -> StorageService:
    cfg = get_config()
    configure_logging(cfg.log_level)
    return StorageService(cfg.database_url)


def get_auth() -> AuthService:
    if "auth" not in st.session_state:
        cfg: AppConfig = get_config()
        st.session_state.auth = AuthService(get_storage(), seed_defaults=cfg.seed_default_users)
    return st.session_state.auth


def get_theme_service() -> ThemeService:
    if "theme_service" not in st.session_state:
        st.session_state.theme_service = ThemeService(get_storage())
    return st.session_state.theme_service


def get_admin_vm() -> AdminViewModel:
    if "admin_vm" not in st.session_state:
        st.session_state.admin_vm = AdminViewModel(get_storage(), get_auth(), get_config())
    return st.session_state.admin_vm


def get_client_vm() -> ClientViewModel:
    if "client_vm" not in st.session_state:
        st.session_state.client_vm = ClientViewModel(get_storage(), get_auth(), get_config())
    return st.session_state.client_vm


def page_setup(page_title: str, page_icon: str) -> None:
    set_theme(page_title=page_title, page_icon=page_icon, theme=get_theme_service().theme)


def login(user_id: str) -> bool:
    result = get_auth().login(user_id)
    if not result.success:
        st.error(result.error or "Login failed")
        return False
    set_login_state(st.session_state, result.user)
    # view models are per user
    st.session_state.pop("admin_vm", None)
    st.session_state.pop("client_vm", None)
    return True


def logout() -> None:
    get_auth().logout()
    set_login_state(st.session_state, None)
    st.session_state.pop("admin_vm", None)
    st.session_state.pop("client_vm", None)


def require_role(role: str) -> None:
    """Stop the page unless the session user has ``role``."""
    auth = get_auth()
    if not is_logged_in(st.session_state) and auth.is_authenticated:
        set_login_state(st.session_state, auth.current_user)
    if not auth.is_authenticated:
        st.warning("Please log in from the home page first.")
        st.stop()
    if not auth.has_role(role):
        st.error(f"This page is only available to {role} users.")
        st.stop()


def run_command(fn, *args, success: Optional[str] = None, **kwargs):
    """Run a view-model command and report the outcome in the UI."""
    try:
        result = fn(*args, **kwargs)
    except PersistenceError as exc:
        st.warning(str(exc))
        return exc.record
    except TaskboardError as exc:
        st.error(str(exc))
        return None
    if success:
        st.toast(success, icon="✅")
    return result


def unsaved_warning(vm) -> None:
    if vm.unsaved:
        st.warning(
            "Changes to " + ", ".join(sorted(vm.unsaved))
            + " are not saved yet and will be lost on logout. They are saved with your next change."
        )


def badge(text: str, color: str) -> str:
    return f'<span class="tb-badge" style="background:{color}">{html.escape(text)}</span>'


def task_card(task: Task, subtitle: str = "", now=None) -> None:
    overdue = task.is_overdue(now)
    badges = badge(task.status.value.replace("_", " "), STATUS_COLORS[task.status.value])
    badges += badge(task.priority.value, PRIORITY_COLORS[task.priority.value])
    if overdue:
        badges += badge("overdue", PRIORITY_COLORS["high"])
    desc = html.escape(task.description) if task.description else ""
    st.markdown(
        f"""
        <div class="task-card{' overdue' if overdue else ''}">
          <div><strong>{html.escape(task.title)}</strong> {badges}</div>
          <div>{desc}</div>
          <div class="meta">{html.escape(subtitle)} · Due {format_date(task.due_date)} · Created {format_date(task.created_at)}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )
