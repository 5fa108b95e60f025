import os
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from servicehub.common.utils.constants import DEFAULT_LOCAL_TIMEZONE


def from_iso_string(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        raise ValueError("Stored datetime must be timezone-aware")
    return dt.astimezone(timezone.utc)


def optional_from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return from_iso_string(value)


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        raise ValueError("Datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).isoformat()


@lru_cache(maxsize=None)
def local_timezone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or os.environ.get("LOCAL_TIMEZONE", DEFAULT_LOCAL_TIMEZONE))
