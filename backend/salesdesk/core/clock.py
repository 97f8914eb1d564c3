# salesdesk/core/clock.py
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from salesdesk.core.config import settings


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def local_tz() -> ZoneInfo:
    return _zone(settings.LOCAL_TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """
    Naive timestamps are read as local wall-clock time (that is how the
    console's operators enter and read them).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=local_tz())
    return value


def to_local(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(local_tz())


def new_record_id(prefix: str) -> str:
    # e.g. T3F9A1C2D7, BONUS8E21F0A4B
    return f"{prefix}{secrets.token_hex(4).upper()}"
