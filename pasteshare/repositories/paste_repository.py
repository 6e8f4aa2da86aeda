from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Delete, Select, Update, and_, delete, or_, select, update
from sqlalchemy.orm import Session

from pasteshare.domain.models import Paste, generate_paste_id
from pasteshare.observability import get_correlation_id


logger = logging.getLogger(__name__)


class PasteRepository:
    """
    Repository for Paste records.

    All database interaction for Paste should go through this class. The
    caller owns the session and is responsible for committing.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def create_paste(
        self,
        *,
        content: str,
        created_at: datetime,
        expires_at: Optional[datetime] = None,
        max_views: Optional[int] = None,
    ) -> Paste:
        """
        Create and persist a new Paste under a freshly generated id.

        Note: Paste content is set only at creation time and is not exposed
        for updates via this repository.
        """

        paste = Paste(
            id=generate_paste_id(self._id_taken),
            content=content,
            created_at=created_at,
            expires_at=expires_at,
            max_views=max_views,
            views=0,
        )
        self._session.add(paste)
        self._session.flush()
        return paste

    def _id_taken(self, paste_id: str) -> bool:
        return self._session.get(Paste, paste_id) is not None

    def get_paste_by_id(self, paste_id: str, *, refresh: bool = False) -> Optional[Paste]:
        """
        Return a Paste by its id, or ``None`` if not found.

        With ``refresh`` an instance already held by the session is reloaded
        from the database instead of being returned as-is.
        """

        stmt: Select[tuple[Paste]] = select(Paste).where(Paste.id == paste_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self._session.execute(stmt).scalar_one_or_none()

    def delete_paste_by_id(self, paste_id: str) -> bool:
        """
        Delete a Paste by id.

        Deleting a missing id is not an error; returns whether a row was removed.
        """

        stmt: Delete = delete(Paste).where(Paste.id == paste_id)
        result = self._session.execute(stmt)
        return bool(result.rowcount)

    def increment_views(self, paste_id: str, *, now: datetime) -> Optional[Paste]:
        """
        Atomically consume one view of a Paste that is still alive at ``now``.

        The read-modify-write happens in a single ``UPDATE ... RETURNING``
        whose WHERE clause repeats the liveness rules, so concurrent accessors
        racing on the last view cannot both win. Returns the updated Paste,
        or ``None`` when the paste is missing, expired, or out of views.
        """

        stmt: Update = (
            update(Paste)
            .where(
                Paste.id == paste_id,
                or_(Paste.max_views.is_(None), Paste.views < Paste.max_views),
                or_(Paste.expires_at.is_(None), Paste.expires_at >= now),
            )
            .values(views=Paste.views + 1)
            .returning(Paste.views)
            .execution_options(synchronize_session=False)
        )
        row = self._session.execute(stmt).one_or_none()
        if row is None:
            return None

        (new_views,) = row
        paste = self._session.get(Paste, paste_id, populate_existing=True)
        logger.debug(
            "Paste view consumed",
            extra={
                "event": "paste_view_consumed",
                "paste_id": paste_id,
                "views": int(new_views),
                "correlation_id": get_correlation_id(),
            },
        )
        return paste

    def delete_expired(self, *, now: datetime) -> int:
        """Delete every Paste already past its deadline or out of views."""

        stmt: Delete = (
            delete(Paste)
            .where(
                or_(
                    and_(Paste.expires_at.isnot(None), Paste.expires_at < now),
                    and_(Paste.max_views.isnot(None), Paste.views >= Paste.max_views),
                )
            )
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)

    def ping(self) -> None:
        """Round-trip a trivial query; raises if the store is unreachable."""

        self._session.execute(select(1)).scalar_one()
