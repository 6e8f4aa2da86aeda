from __future__ import annotations

from dataclasses import dataclass

from flask import Flask
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


Base = declarative_base()


@dataclass
class Database:
    """Engine plus the session factory bound to it."""

    engine: Engine
    session_factory: sessionmaker[Session]

    def dispose(self) -> None:
        self.engine.dispose()


def create_database(database_uri: str, *, echo: bool = False) -> Database:
    """Build an engine and a matching session factory for ``database_uri``."""

    engine = create_engine(database_uri, echo=echo)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return Database(engine=engine, session_factory=factory)


def get_database(app: Flask) -> Database:
    """
    Return the ``Database`` registered on ``app``.

    This expects that ``init_db(app)`` has been called during application
    startup.
    """
    try:
        return app.extensions["pasteshare.db"]
    except KeyError:
        raise RuntimeError("Database is not initialized. Call init_db(app) first.") from None


def init_db(app: Flask) -> Database:
    """
    Initialize the SQLAlchemy engine and session factory for the Flask app.

    Reads the database URL from ``app.config['SQLALCHEMY_DATABASE_URI']``.
    """
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI")
    if not database_uri:
        raise RuntimeError(
            "SQLALCHEMY_DATABASE_URI is not configured on the Flask app."
        )

    database = create_database(
        database_uri,
        echo=app.config.get("SQLALCHEMY_ECHO", False),
    )
    app.extensions["pasteshare.db"] = database
    return database
