from __future__ import annotations

import enum
from datetime import datetime, timezone

from .models import Paste, as_utc


class PasteState(str, enum.Enum):
    ALIVE = "ALIVE"
    EXPIRED_BY_TIME = "EXPIRED_BY_TIME"
    EXPIRED_BY_VIEWS = "EXPIRED_BY_VIEWS"
    GONE = "GONE"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def evaluate_access(paste: Paste | None, now: datetime) -> PasteState:
    """
    Decide the state of ``paste`` for an access happening at ``now``.

    - Missing record → ``GONE``.
    - ``now`` strictly after ``expires_at`` → ``EXPIRED_BY_TIME``; an access
      exactly at the expiry instant is still allowed.
    - ``views >= max_views`` before this access → ``EXPIRED_BY_VIEWS``, so the
      ``max_views``-th access is the last one that succeeds.
    - Otherwise ``ALIVE``.

    Time expiry is checked first: a paste past its deadline is expired by time
    even when its views are also exhausted.
    """

    if paste is None:
        return PasteState.GONE

    expires_at = as_utc(paste.expires_at)
    if expires_at is not None and as_utc(now) > expires_at:
        return PasteState.EXPIRED_BY_TIME

    if paste.max_views is not None and paste.views >= paste.max_views:
        return PasteState.EXPIRED_BY_VIEWS

    return PasteState.ALIVE


def remaining_views(paste: Paste) -> int | None:
    """Views left after the current state, or ``None`` when unlimited."""
    if paste.max_views is None:
        return None
    return max(paste.max_views - paste.views, 0)


def format_timestamp(value: datetime | None) -> str | None:
    """ISO-8601 UTC with millisecond precision and a trailing ``Z``."""
    value = as_utc(value)
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
