from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from pasteshare.domain import models
from pasteshare.domain.models import PASTE_ID_ALPHABET, Paste, generate_paste_id
from pasteshare.repositories.paste_repository import PasteRepository


NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def create(repo: PasteRepository, **kwargs) -> Paste:
    kwargs.setdefault("content", "hello")
    kwargs.setdefault("created_at", NOW)
    return repo.create_paste(**kwargs)


# ---------------------------------------------------------------------------
# Id generation
# ---------------------------------------------------------------------------


def test_generated_ids_are_short_and_url_safe() -> None:
    ids = {generate_paste_id() for _ in range(200)}
    assert len(ids) == 200
    for paste_id in ids:
        assert len(paste_id) == 8
        assert set(paste_id) <= set(PASTE_ID_ALPHABET)


def test_generate_paste_id_skips_taken_candidates() -> None:
    seen: list[str] = []

    def exists(candidate: str) -> bool:
        seen.append(candidate)
        return len(seen) < 3

    paste_id = generate_paste_id(exists)
    assert len(seen) == 3
    assert paste_id == seen[-1]


def test_generate_paste_id_gives_up_eventually() -> None:
    with pytest.raises(RuntimeError):
        generate_paste_id(lambda _candidate: True)


def test_create_retries_on_id_collision(
    session: Session,
    paste_repo: PasteRepository,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    existing = create(paste_repo)
    session.commit()

    candidates = iter([existing.id, "fresh_id"])
    monkeypatch.setattr(
        models.secrets,
        "choice",
        _CharFeeder(candidates),
    )

    paste = create(paste_repo, content="second")
    assert paste.id == "fresh_id"


class _CharFeeder:
    """Replacement for ``secrets.choice`` that spells out queued ids."""

    def __init__(self, ids) -> None:
        self._chars = iter("".join(ids))

    def __call__(self, _alphabet: str) -> str:
        return next(self._chars)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def test_create_and_find(session: Session, paste_repo: PasteRepository) -> None:
    paste = create(paste_repo, max_views=2, expires_at=NOW + timedelta(minutes=5))
    session.commit()

    found = paste_repo.get_paste_by_id(paste.id)
    assert found is not None
    assert found.content == "hello"
    assert found.views == 0
    assert found.max_views == 2


def test_find_missing_returns_none(paste_repo: PasteRepository) -> None:
    assert paste_repo.get_paste_by_id("nope1234") is None


def test_delete_is_idempotent(session: Session, paste_repo: PasteRepository) -> None:
    paste = create(paste_repo)
    session.commit()

    assert paste_repo.delete_paste_by_id(paste.id) is True
    assert paste_repo.delete_paste_by_id(paste.id) is False
    assert paste_repo.delete_paste_by_id("missing1") is False
    session.commit()
    assert paste_repo.get_paste_by_id(paste.id) is None


def test_paste_content_is_immutable(session: Session, paste_repo: PasteRepository) -> None:
    paste = create(paste_repo, content="immutable content")
    session.flush()

    with pytest.raises(ValueError):
        paste.content = "new content"


# ---------------------------------------------------------------------------
# Atomic view increment
# ---------------------------------------------------------------------------


def test_increment_views_returns_updated_paste(session: Session, paste_repo: PasteRepository) -> None:
    paste = create(paste_repo, max_views=10)
    session.commit()

    first = paste_repo.increment_views(paste.id, now=NOW)
    assert first is not None and first.views == 1
    second = paste_repo.increment_views(paste.id, now=NOW)
    assert second is not None and second.views == 2
    session.commit()

    refreshed = session.get(Paste, paste.id, populate_existing=True)
    assert refreshed is not None
    assert refreshed.views == 2


def test_increment_views_refuses_once_limit_reached(
    session: Session,
    paste_repo: PasteRepository,
) -> None:
    paste = create(paste_repo, max_views=1)
    session.commit()

    assert paste_repo.increment_views(paste.id, now=NOW) is not None
    assert paste_repo.increment_views(paste.id, now=NOW) is None
    session.commit()
    assert paste_repo.get_paste_by_id(paste.id).views == 1


def test_increment_views_refuses_after_expiry(session: Session, paste_repo: PasteRepository) -> None:
    paste = create(paste_repo, expires_at=NOW)
    session.commit()

    assert paste_repo.increment_views(paste.id, now=NOW + timedelta(milliseconds=1)) is None
    assert paste_repo.increment_views(paste.id, now=NOW) is not None


def test_increment_views_on_missing_paste(paste_repo: PasteRepository) -> None:
    assert paste_repo.increment_views("missing1", now=NOW) is None


# ---------------------------------------------------------------------------
# Cleanup / health
# ---------------------------------------------------------------------------


def test_delete_expired_removes_only_unreachable(session: Session, paste_repo: PasteRepository) -> None:
    timed_out = create(paste_repo, expires_at=NOW - timedelta(seconds=1))
    used_up = create(paste_repo, max_views=1)
    at_boundary = create(paste_repo, expires_at=NOW)
    unlimited = create(paste_repo)
    session.commit()
    paste_repo.increment_views(used_up.id, now=NOW)
    session.commit()

    assert paste_repo.delete_expired(now=NOW) == 2
    session.commit()

    remaining = set(session.execute(select(Paste.id)).scalars())
    assert remaining == {at_boundary.id, unlimited.id}
    assert timed_out.id not in remaining


def test_ping(paste_repo: PasteRepository) -> None:
    paste_repo.ping()
