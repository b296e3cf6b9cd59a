from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config_utils import env_bool, env_first, env_int, env_str

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for the taskboard app.

    DB selection:
    - TASKBOARD_DATABASE_URL: app-specific DB URL (preferred)
    - PLATFORM_DATABASE_URL / DATABASE_URL: shared DB URL
    - If none is set, defaults to local SQLite at data/taskboard.db

    UI:
    - TASKBOARD_SEARCH_DEBOUNCE_MS: quiet period before a search recomputes (default: 300)
    - TASKBOARD_TREND_DAYS: window of the productivity trend chart (default: 30)

    Misc:
    - TASKBOARD_SEED_DEFAULT_USERS: create the demo admin/clients on an empty store (default: true)
    - TASKBOARD_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    """

    database_url: str
    search_debounce_ms: int
    trend_days: int
    seed_default_users: bool
    log_level: str

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0

    @classmethod
    def from_env(cls) -> "AppConfig":
        db_url = env_first("TASKBOARD_DATABASE_URL", "PLATFORM_DATABASE_URL", "DATABASE_URL")
        if not db_url:
            repo_root = Path(__file__).resolve().parents[1]
            data_dir = repo_root / "data"
            data_dir.mkdir(parents=True, exist_ok=True)
            db_url = f"sqlite:///{(data_dir / 'taskboard.db').as_posix()}"

        return cls(
            database_url=db_url,
            search_debounce_ms=env_int("TASKBOARD_SEARCH_DEBOUNCE_MS", 300, minimum=0),
            trend_days=env_int("TASKBOARD_TREND_DAYS", 30, minimum=1),
            seed_default_users=env_bool("TASKBOARD_SEED_DEFAULT_USERS", True),
            log_level=env_str("TASKBOARD_LOG_LEVEL", "INFO").upper(),
        )


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the app configuration (cached)."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
