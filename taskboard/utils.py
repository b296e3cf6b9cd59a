from __future__ import annotations

import math
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Best-effort conversion to an aware UTC datetime; None when impossible."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


def format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "—"


def generate_unique_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def percentage(part: int, total: int) -> int:
    """Whole-number percentage, halves rounded up, 0 for an empty total."""
    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))
