"""Database helpers for psycopg connections."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import psycopg

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], psycopg.Connection]


def connection_factory(dsn: str, *, connect_timeout: int = 3) -> ConnectionFactory:
    """Return a callable opening a fresh connection to ``dsn``.

    Connections are short-lived and opened per operation; the connect timeout
    is kept low so a dead database fails fast instead of stalling a webhook.
    """

    def _connect() -> psycopg.Connection:
        return psycopg.connect(dsn, connect_timeout=connect_timeout)

    return _connect


@contextmanager
def transaction(connect: ConnectionFactory) -> Iterator[psycopg.Connection]:
    """Open a connection, commit on success and roll back on error."""

    conn = connect()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
