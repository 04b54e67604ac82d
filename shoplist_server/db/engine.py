"""SQLAlchemy engine and session factory for the user directory.

When DATABASE_URL is configured the app builds one engine at startup and
hands a session factory to SqlUserDirectory.  When it is not, the app
falls back to the in-memory directory and nothing here is used.

The authentication core calls the directory synchronously from FastAPI's
worker threads, so this is the plain (non-async) engine.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        # An in-memory database only exists inside a single connection.
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
    else:
        engine = create_engine(
            database_url,
            echo=echo,  # log SQL in dev only
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
        )
    logger.info("Database engine created: %s", engine.url.render_as_string())
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    # Import for the side effect of registering the tables on Base.metadata.
    from shoplist_server.db import tables  # noqa: F401

    Base.metadata.create_all(engine)
