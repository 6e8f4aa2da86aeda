from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from flask import Flask
from flask.testing import FlaskClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pasteshare import create_app
from pasteshare.db import Base, get_database
from pasteshare.repositories.paste_repository import PasteRepository
from pasteshare.services.paste_service import PasteService


BASE_URL = "https://paste.example"


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """
    Create a fresh file-backed SQLite engine for each test function.

    A file (rather than ``:memory:``) lets several threads share one database
    through independent connections.
    """

    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'pastes.db'}",
        connect_args={"timeout": 30},
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def paste_repo(session: Session) -> PasteRepository:
    return PasteRepository(session=session)


@pytest.fixture
def paste_service(session_factory: sessionmaker[Session]) -> PasteService:
    """Service with its own session factory; each call gets a new session from the test engine."""
    return PasteService(session_factory=session_factory, base_url=BASE_URL)


@pytest.fixture
def broken_service() -> PasteService:
    """Service whose store can never be reached."""
    engine = create_engine("sqlite+pysqlite:////nonexistent-dir/for/pastes.db")
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return PasteService(session_factory=factory, base_url=BASE_URL)


# ---------------------------------------------------------------------------
# Flask fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app(tmp_path: Path) -> Generator[Flask, None, None]:
    app = create_app(
        "testing",
        {
            "SQLALCHEMY_DATABASE_URI": f"sqlite+pysqlite:///{tmp_path / 'app.db'}",
            "BASE_URL": BASE_URL,
        },
    )
    database = get_database(app)
    Base.metadata.create_all(database.engine)
    try:
        yield app
    finally:
        database.dispose()


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    return app.test_client()
