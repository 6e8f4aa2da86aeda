from __future__ import annotations

import secrets
import string
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from pasteshare.db import Base


PASTE_ID_LENGTH = 8
PASTE_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
MAX_ID_ATTEMPTS = 10

# Upper bound of a 32-bit INTEGER column.
MAX_VIEWS_LIMIT = 2**31 - 1


def generate_paste_id(exists: Callable[[str], bool] | None = None) -> str:
    """
    Return a random URL-safe paste id.

    ``exists`` is consulted for every candidate so callers can reject ids
    already present in the store.
    """

    for _ in range(MAX_ID_ATTEMPTS):
        candidate = "".join(
            secrets.choice(PASTE_ID_ALPHABET) for _ in range(PASTE_ID_LENGTH)
        )
        if exists is None or not exists(candidate):
            return candidate
    raise RuntimeError(f"Could not generate a unique paste id after {MAX_ID_ATTEMPTS} attempts.")


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Paste(Base):
    """Paste entity persisted via SQLAlchemy."""

    __tablename__ = "pastes"
    __table_args__ = (
        CheckConstraint(
            "max_views IS NULL OR max_views >= 1",
            name="ck_pastes_max_views_min_1",
        ),
        CheckConstraint("views >= 0", name="ck_pastes_views_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(PASTE_ID_LENGTH), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    max_views: Mapped[int | None] = mapped_column(Integer, nullable=True)
    views: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @validates("content")
    def _validate_immutable_content(self, key: str, value: str) -> str:
        """
        Enforce that ``content`` is immutable after initial creation.

        The value can be set on new instances, but any subsequent attempt to
        change it will raise an error.
        """

        if getattr(self, "content", None) is not None and self.content != value:
            raise ValueError("Paste content is immutable and cannot be modified.")
        return value

    def __repr__(self) -> str:
        return f"<Paste id={self.id!r} views={self.views} max_views={self.max_views}>"
