"""Relational persistence: SQLModel tables plus engine/session helpers."""

from contentgen.db.engine import (
    SessionFactory,
    create_db_engine,
    drop_all_tables,
    init_db,
    make_session_factory,
    session_scope,
)

__all__ = [
    "SessionFactory",
    "create_db_engine",
    "drop_all_tables",
    "init_db",
    "make_session_factory",
    "session_scope",
]
