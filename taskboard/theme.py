from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional

import streamlit as st
from streamlit.errors import StreamlitAPIException

from . import storage as stg
from .storage import StorageService

logger = logging.getLogger(__name__)


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


DEFAULT_THEME = Theme.DARK

PALETTES: Dict[Theme, Dict[str, str]] = {
    Theme.DARK: {
        "background": "#0f172a",
        "surface": "#1e293b",
        "text": "#e2e8f0",
        "muted": "#94a3b8",
        "accent": "#38bdf8",
        "border": "#334155",
    },
    Theme.LIGHT: {
        "background": "#f8fafc",
        "surface": "#ffffff",
        "text": "#0f172a",
        "muted": "#51658a",
        "accent": "#0b63d6",
        "border": "#e2e8f0",
    },
}

STATUS_COLORS = {"pending": "#f59e0b", "in_progress": "#3b82f6", "completed": "#22c55e"}
PRIORITY_COLORS = {"high": "#ef4444", "medium": "#f59e0b", "low": "#22c55e"}


class ThemeService:
    """Dark/light preference, kept in the ``theme`` document."""

    def __init__(self, storage: StorageService):
        self.storage = storage
        self._theme = self._load()

    def _load(self) -> Theme:
        stored = self.storage.load_value(stg.THEME)
        try:
            return Theme(stored) if stored else DEFAULT_THEME
        except ValueError:
            logger.warning("Unknown stored theme %r, using %s", stored, DEFAULT_THEME.value)
            return DEFAULT_THEME

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def is_dark(self) -> bool:
        return self._theme == Theme.DARK

    def set_theme(self, theme: Theme | str) -> bool:
        """Switch theme. Returns False for an unknown theme name."""
        try:
            self._theme = Theme(theme)
        except ValueError:
            logger.warning("Ignoring unknown theme %r", theme)
            return False
        if not self.storage.save_value(stg.THEME, self._theme.value):
            logger.warning("Theme preference will not survive a reload")
        return True

    def toggle(self) -> Theme:
        self.set_theme(Theme.LIGHT if self.is_dark else Theme.DARK)
        return self._theme


def theme_css(theme: Theme | str = DEFAULT_THEME) -> str:
    p = PALETTES[Theme(theme)]
    return f"""
    .stApp {{
        background-color: {p['background']};
        color: {p['text']};
    }}
    .task-card {{
        background: {p['surface']};
        border: 1px solid {p['border']};
        border-radius: 12px;
        padding: 0.9rem 1.1rem;
        margin-bottom: 0.6rem;
    }}
    .task-card .meta {{
        color: {p['muted']};
        font-size: 0.85rem;
    }}
    .task-card.overdue {{
        border-left: 4px solid {PRIORITY_COLORS['high']};
    }}
    .tb-badge {{
        display: inline-block;
        border-radius: 999px;
        padding: 0.1rem 0.6rem;
        font-size: 0.75rem;
        font-weight: 600;
        color: #ffffff;
        margin-right: 0.3rem;
    }}
    .tb-header h1 {{
        color: {p['accent']};
        font-weight: 800;
        margin-bottom: 0.2rem;
    }}
    """


def set_theme(
    page_title: str = "Taskboard",
    page_icon: str = "✅",
    layout: str = "wide",
    initial_sidebar_state: str = "expanded",
    theme: Optional[Theme | str] = None,
):
    """Configure the Streamlit page and inject the palette CSS.

    Safe to call at the top of every page. ``set_page_config`` only takes
    effect once per run; the CSS is (re)injected on each call.
    """
    try:
        st.set_page_config(
            page_title=page_title,
            page_icon=page_icon,
            layout=layout,
            initial_sidebar_state=initial_sidebar_state,
        )
    except StreamlitAPIException:
        # set_page_config can only be called once per run
        logger.debug("Page config already set")

    st.markdown(f"<style>{theme_css(theme or DEFAULT_THEME)}</style>", unsafe_allow_html=True)
