"""Query execution against PostgreSQL."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional, Protocol

import psycopg
from psycopg import Connection

logger = logging.getLogger(__name__)


class QueryExecutor(Protocol):
    """
    What the catalog fetcher needs from a database session.

    SQL NULL values come back as None.
    """

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> list[tuple]:
        """Run sql and return every row."""
        ...

    def scalar(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Run sql and return the first column of the first row, or None."""
        ...


class PsycopgExecutor:
    """QueryExecutor over a psycopg connection."""

    def __init__(self, conn: Connection):
        self.conn = conn

    @classmethod
    def connect(cls, url: str, **kwargs: Any) -> PsycopgExecutor:
        """
        Open a new connection.

        Args:
            url: PostgreSQL connection URL
            **kwargs: Passed through to psycopg.connect()
        """
        kwargs.setdefault("autocommit", True)
        return cls(psycopg.connect(url, **kwargs))

    @property
    def dbname(self) -> str:
        return self.conn.info.dbname

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> list[tuple]:
        logger.debug(f"query: {sql.strip()}")
        with self.conn.cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchall()

    def scalar(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        logger.debug(f"query: {sql.strip()}")
        with self.conn.cursor() as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
        return row[0] if row is not None else None

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> PsycopgExecutor:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
