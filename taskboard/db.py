"""Taskboard database engine and session management."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import get_config


_engine: Optional[Engine] = None
_sessionmaker = None


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Get or create the SQLAlchemy engine.

    Args:
        database_url: Optional override for the database URL.
                     If not provided, uses config.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _sessionmaker

    if database_url is None:
        database_url = get_config().database_url

    # Return cached engine if URL matches
    if _engine is not None and _engine.url.render_as_string(hide_password=False) == database_url:
        return _engine

    # Streamlit runs each session's script on its own thread
    connect_args = {}
    if database_url.startswith("sqlite:"):
        connect_args = {"check_same_thread": False}

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(
        database_url,
        future=True,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    _sessionmaker = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False, future=True)
    return _engine


def get_session(database_url: Optional[str] = None) -> Session:
    """Create a new database session bound to the (cached) engine."""
    get_engine(database_url)
    return _sessionmaker()


def get_backend_name(database_url: Optional[str] = None) -> str:
    """Get the database backend name (sqlite, postgresql, etc.)."""
    return get_engine(database_url).url.get_backend_name()


def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessionmaker = None
