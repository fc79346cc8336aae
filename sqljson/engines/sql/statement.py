"""
DB-API statement and row cursor used by the executors.

A ``Statement`` is built once per prepared query and executed many times; a
``RowCursor`` lives for exactly one execution. When the statement runs on a
``ConnectionPool`` each execution borrows a connection, and the cursor hands
it back on close.
"""

import functools
from collections.abc import Callable, Iterator, Sequence
from typing import Any

from sqljson.core.pool import ConnectionPool
from sqljson.engines.sql.dialects import Dialect


def _noop() -> None:
    return None


class RowCursor:
    """Iterates the rows of one execution; must be closed (use ``with``)."""

    def __init__(
        self,
        cursor: Any,
        *,
        fetch_size: int = 0,
        on_close: Callable[[], None] = _noop,
    ) -> None:
        self._cursor = cursor
        self._fetch_size = fetch_size
        self._on_close = on_close
        self._closed = False

    def columns(self) -> list[str]:
        """Result column names; empty when the statement produced no result set."""
        desc = self._cursor.description
        if not desc:
            return []
        return [d[0] for d in desc]

    def __iter__(self) -> Iterator[Sequence[Any]]:
        if not self._cursor.description:
            return
        size = self._fetch_size or getattr(self._cursor, "arraysize", 1) or 1
        while True:
            batch = self._cursor.fetchmany(size)
            if not batch:
                return
            yield from batch

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._cursor.close()
        finally:
            self._on_close()

    def __enter__(self) -> "RowCursor":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


class Statement:
    """Rewritten SQL bound to a connection (or pool) and its dialect."""

    def __init__(
        self,
        db: Any,
        sql: str,
        dialect: Dialect,
        *,
        fetch_size: int = 0,
    ) -> None:
        self.db = db
        self.sql = sql
        self.dialect = dialect
        self.fetch_size = fetch_size
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _acquire(self) -> tuple[Any, Callable[[], None]]:
        if isinstance(self.db, ConnectionPool):
            conn = self.db.get_connection()
            return conn, functools.partial(self.db.release, conn)
        return self.db, _noop

    def compile(self, nparams: int) -> None:
        """Have the database check ``self.sql`` bound with *nparams* values; raises the driver's error."""
        conn, release = self._acquire()
        try:
            self.dialect.probe(conn, self.sql, nparams)
        finally:
            release()

    def execute(self, argv: Sequence[Any]) -> RowCursor:
        """Run the statement with positional *argv*."""
        if self._closed:
            raise RuntimeError("statement is closed")
        conn, release = self._acquire()
        try:
            cur = conn.cursor()
        except BaseException:
            release()
            raise
        try:
            cur.execute(self.sql, list(argv))
        except BaseException:
            try:
                cur.close()
            finally:
                release()
            raise
        return RowCursor(cur, fetch_size=self.fetch_size, on_close=release)

    def close(self) -> None:
        """Release the statement. The connection or pool is left to its owner."""
        self._closed = True
