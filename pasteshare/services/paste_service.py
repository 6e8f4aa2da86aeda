from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pasteshare.domain.lifecycle import (
    PasteState,
    evaluate_access,
    format_timestamp,
    remaining_views,
    utc_now,
)
from pasteshare.domain.models import MAX_VIEWS_LIMIT, Paste, as_utc
from pasteshare.observability import get_correlation_id
from pasteshare.repositories.paste_repository import PasteRepository
from pasteshare.services.rendering import render_paste_page


logger = logging.getLogger(__name__)


class PasteError(Exception):
    """Base class for paste-related errors."""


class PasteValidationError(PasteError):
    """Raised when creating a paste with invalid parameters."""


class PasteNotFoundError(PasteError):
    """
    Raised when a paste cannot be served.

    Missing, time-expired and view-exhausted pastes all surface as this
    error; ``state`` records which one it was.
    """

    def __init__(self, message: str, *, state: PasteState = PasteState.GONE) -> None:
        super().__init__(message)
        self.state = state


class PasteStoreError(PasteError):
    """Raised when the underlying store is unreachable or a write fails."""


_NOT_FOUND_MESSAGES = {
    PasteState.GONE: "Paste not found",
    PasteState.EXPIRED_BY_TIME: "Paste expired",
    PasteState.EXPIRED_BY_VIEWS: "View limit exceeded",
}

MAX_CONTENT_BYTES = 100 * 1024  # 100 KiB


def _is_positive_int(value: Any, upper: Optional[int] = None) -> bool:
    # bool is an int subclass; reject it explicitly.
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        return False
    return upper is None or value <= upper


def _paste_to_view(paste: Paste) -> dict[str, Any]:
    """Convert an accessed Paste to the DTO returned to readers."""
    return {
        "content": paste.content,
        "remaining_views": remaining_views(paste),
        "expires_at": format_timestamp(paste.expires_at),
    }


@dataclass
class PasteService:
    """
    Application service coordinating paste-related use cases.

    Owns session lifecycle: creates a session per use case, commits on success,
    rolls back on exception, and closes the session in a finally block.
    Returns plain dict DTOs; no ORM entities escape this layer.

    Every time-sensitive operation accepts an explicit ``now``; when omitted
    the wall clock is used.
    """

    session_factory: Callable[[], Session]
    base_url: str = "http://localhost:5001"
    max_content_bytes: int = MAX_CONTENT_BYTES

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception(
                "Paste store failure",
                extra={
                    "event": "paste_store_error",
                    "error_type": type(exc).__name__,
                    "correlation_id": get_correlation_id(),
                },
            )
            raise PasteStoreError(f"Store failure during {operation}.") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _invalid(self, message: str) -> PasteValidationError:
        logger.warning(
            message,
            extra={
                "event": "paste_create_invalid_parameters",
                "correlation_id": get_correlation_id(),
            },
        )
        return PasteValidationError(message)

    def build_url(self, paste_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/p/{paste_id}"

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------
    def create_paste(
        self,
        *,
        content: Any,
        ttl_seconds: Any = None,
        max_views: Any = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """
        Create a new paste enforcing business rules:

        - ``content`` must be a string that is not blank; it is stored trimmed
        - ``content`` size must be <= ``max_content_bytes`` (UTF-8 bytes)
        - ``ttl_seconds`` and ``max_views`` (if provided) must be integers >= 1
        - ``max_views`` must fit the 32-bit column (<= ``MAX_VIEWS_LIMIT``)
        """
        if not isinstance(content, str) or not content.strip():
            raise self._invalid("Content is required and must be non-empty")

        content = content.strip()
        if len(content.encode("utf-8")) > self.max_content_bytes:
            raise self._invalid(
                f"Content must be at most {self.max_content_bytes} bytes when UTF-8 encoded"
            )

        if ttl_seconds is not None and not _is_positive_int(ttl_seconds):
            raise self._invalid("ttl_seconds must be integer >= 1")

        if max_views is not None and not _is_positive_int(max_views, MAX_VIEWS_LIMIT):
            raise self._invalid(f"max_views must be integer >= 1 and <= {MAX_VIEWS_LIMIT}")

        created_at = as_utc(now) or utc_now()
        expires_at = None
        if ttl_seconds is not None:
            try:
                expires_at = created_at + timedelta(milliseconds=ttl_seconds * 1000)
            except OverflowError:
                raise self._invalid("ttl_seconds is too large") from None

        with self._unit_of_work("create") as session:
            paste = PasteRepository(session=session).create_paste(
                content=content,
                created_at=created_at,
                expires_at=expires_at,
                max_views=max_views,
            )
            paste_id = paste.id

        logger.info(
            "Paste created",
            extra={
                "event": "paste_created",
                "paste_id": paste_id,
                "correlation_id": get_correlation_id(),
            },
        )
        return {"id": paste_id, "url": self.build_url(paste_id)}

    # -------------------------------------------------------------------------
    # Retrieval / viewing
    # -------------------------------------------------------------------------
    def get_paste_data(
        self,
        paste_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """
        Access a paste, consuming one view.

        Rules, evaluated at ``now``:
        - missing → PasteNotFoundError
        - ``now > expires_at`` → delete the record, then PasteNotFoundError
        - ``views >= max_views`` → PasteNotFoundError
        - otherwise increment views atomically and return the view DTO
        """
        now = as_utc(now) or utc_now()

        logger.info(
            "Paste access attempt",
            extra={
                "event": "paste_access_attempt",
                "paste_id": paste_id,
                "correlation_id": get_correlation_id(),
            },
        )

        view: Optional[dict[str, Any]] = None
        with self._unit_of_work("access") as session:
            repo = PasteRepository(session=session)
            paste = repo.get_paste_by_id(paste_id)
            state = evaluate_access(paste, now)

            if state is PasteState.EXPIRED_BY_TIME:
                repo.delete_paste_by_id(paste_id)
                logger.info(
                    "Paste expired due to time; deleted",
                    extra={
                        "event": "paste_expired_deleted",
                        "paste_id": paste_id,
                        "correlation_id": get_correlation_id(),
                    },
                )
            elif state is PasteState.ALIVE:
                updated = repo.increment_views(paste_id, now=now)
                if updated is None:
                    # Another accessor consumed the last view or removed the
                    # paste between our read and the guarded increment.
                    current = repo.get_paste_by_id(paste_id, refresh=True)
                    state = evaluate_access(current, now)
                    if state is PasteState.ALIVE:
                        state = PasteState.GONE
                else:
                    view = _paste_to_view(updated)

        if view is None:
            logger.info(
                "Paste access denied",
                extra={
                    "event": "paste_access_denied",
                    "paste_id": paste_id,
                    "state": state.value,
                    "correlation_id": get_correlation_id(),
                },
            )
            raise PasteNotFoundError(_NOT_FOUND_MESSAGES[state], state=state)

        logger.info(
            "Paste access successful",
            extra={
                "event": "paste_access_success",
                "paste_id": paste_id,
                "correlation_id": get_correlation_id(),
            },
        )
        return view

    def render_paste_view(
        self,
        paste_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> str:
        """Same access semantics as ``get_paste_data``, rendered as HTML."""
        view = self.get_paste_data(paste_id, now=now)
        return render_paste_page(paste_id, view)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------
    def purge_expired(self, *, now: Optional[datetime] = None) -> int:
        """Delete every paste already unreachable at ``now``; returns the count."""
        now = as_utc(now) or utc_now()
        with self._unit_of_work("purge") as session:
            deleted = PasteRepository(session=session).delete_expired(now=now)
        return deleted

    def ping(self) -> bool:
        """Report whether the store is reachable."""
        try:
            with self._unit_of_work("ping") as session:
                PasteRepository(session=session).ping()
        except PasteStoreError:
            logger.warning(
                "Health check failed",
                extra={
                    "event": "health_check_failed",
                    "correlation_id": get_correlation_id(),
                },
            )
            return False
        return True
