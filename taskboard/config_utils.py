from __future__ import annotations

import os
from typing import Optional

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


def env_first(*names: str) -> Optional[str]:
    """Return the first non-blank value among the given variables."""
    for name in names:
        value = (os.environ.get(name) or "").strip()
        if value:
            return value
    return None


def env_str(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return default


def env_int(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.environ.get(name)
    try:
        value = int(raw.strip()) if raw is not None else int(default)
    except ValueError:
        value = int(default)
    if minimum is not None:
        value = max(minimum, value)
    return value
