"""Helpers for configuring a SQLAlchemy engine."""

from __future__ import annotations

import uuid

from sqlalchemy import Engine, create_engine, event


def get_engine(database_url: str, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine for ``database_url``.

    SQLite engines get a ``gen_random_uuid`` function and foreign keys enabled
    so the PostgreSQL-flavoured server defaults keep working in tests.
    """

    engine = create_engine(database_url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, _connection_record):
            dbapi_connection.create_function("gen_random_uuid", 0, lambda: str(uuid.uuid4()))
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

    return engine
