from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app, request


TEST_NOW_HEADER = "X-Test-Now-Ms"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class InvalidTestClock(ValueError):
    """Raised when the test clock header is present but not an integer."""


def request_now() -> Optional[datetime]:
    """
    Return the injected access time for the current request, if any.

    Only honoured when ``TEST_MODE`` is enabled; the header carries integer
    milliseconds since the Unix epoch. ``None`` means "use the wall clock".
    """
    if not current_app.config.get("TEST_MODE", False):
        return None

    raw = request.headers.get(TEST_NOW_HEADER)
    if raw is None:
        return None

    try:
        return EPOCH + timedelta(milliseconds=int(raw.strip()))
    except (ValueError, OverflowError) as exc:
        raise InvalidTestClock(f"{TEST_NOW_HEADER} must be integer milliseconds.") from exc
