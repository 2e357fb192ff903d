"""SQLModel engine and session management.

This module provides:
- Engine construction for a given URL (no process-wide engine)
- A session factory type that is passed to the pipeline explicitly
- Database initialization utilities

PostgreSQL is the production database; tests use in-memory SQLite.
"""

from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from contentgen.config import DATABASE_URL

SessionFactory = Callable[[], Session]


def create_db_engine(url: Optional[str] = None, echo: bool = False) -> Engine:
    """Create an engine for the given URL (defaults to DATABASE_URL).

    In-memory SQLite URLs get a StaticPool so every session shares the
    same connection and therefore the same database.
    """
    url = url or DATABASE_URL
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    # pool_pre_ping ensures connections are valid before use
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def make_session_factory(engine: Engine) -> SessionFactory:
    """Return a zero-argument callable producing new sessions on `engine`.

    expire_on_commit is off so rows returned from a closed session keep
    their loaded attributes.
    """

    def factory() -> Session:
        return Session(engine, expire_on_commit=False)

    return factory


@contextmanager
def session_scope(factory: SessionFactory) -> Generator[Session, None, None]:
    """Open a session from `factory`, rolling back on error.

    Usage:
        with session_scope(session_factory) as session:
            session.add(row)
            session.commit()
    """
    session = factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """Create all tables defined in SQLModel models."""
    # Import all models to ensure they're registered with SQLModel
    import contentgen.db.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def drop_all_tables(engine: Engine) -> None:
    """Drop all tables. USE WITH CAUTION - data loss will occur."""
    SQLModel.metadata.drop_all(engine)
