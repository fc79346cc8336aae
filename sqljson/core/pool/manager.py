"""
Connection pool for one DataSource.

Prepared queries built on a pool borrow a connection per invocation and hand
it back when the row cursor closes. Includes health-check on checkout and
max-age eviction.
"""

import logging
import threading
import time
from typing import Any, NamedTuple

from sqljson.core.config import settings
from sqljson.models import DataSource, ProductTypeEnum

from .connect import connect

_log = logging.getLogger(__name__)

_PING_IDLE_THRESHOLD = 30.0  # only ping connections idle longer than this (seconds)


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class ConnectionPool:
    """Idle-connection pool with health-check and max-age."""

    def __init__(
        self,
        datasource: DataSource,
        *,
        size: int | None = None,
        max_age: float | None = None,
    ) -> None:
        self.datasource = datasource
        self._idle: list[_PoolEntry] = []
        self._created: dict[int, float] = {}
        self._lock = threading.Lock()
        self._size = size if size is not None else settings.EXTERNAL_DB_POOL_SIZE
        self._max_age = float(
            max_age if max_age is not None else settings.EXTERNAL_DB_POOL_MAX_AGE_SEC
        )

    @property
    def product_type(self) -> ProductTypeEnum:
        return self.datasource.product_type

    def get_connection(self) -> Any:
        """Get a healthy connection (from the pool or freshly opened)."""
        now = time.monotonic()
        while True:
            entry = self._pop()
            if entry is None:
                break
            if self._is_expired(entry):
                self._discard(entry.conn)
                continue
            idle_sec = now - entry.last_used
            if idle_sec > _PING_IDLE_THRESHOLD and not self._is_alive(entry.conn):
                self._discard(entry.conn)
                continue
            return entry.conn

        conn = connect(self.datasource)
        with self._lock:
            self._created[id(conn)] = time.monotonic()
        _log.debug("Opened %s connection", self.datasource.product_type.value)
        return conn

    def release(self, conn: Any) -> None:
        """Return a connection to the pool (or close it if the pool is full)."""
        try:
            conn.rollback()
        except Exception:
            self._discard(conn)
            return

        with self._lock:
            if len(self._idle) < self._size:
                created_at = self._created.get(id(conn), time.monotonic())
                self._idle.append(
                    _PoolEntry(conn=conn, created_at=created_at, last_used=time.monotonic())
                )
                return

        self._discard(conn)

    def dispose(self) -> None:
        """Close all idle connections."""
        with self._lock:
            entries, self._idle = self._idle, []
        for e in entries:
            self._discard(e.conn)

    def stats(self) -> dict[str, int]:
        """Return pool statistics for monitoring."""
        with self._lock:
            return {"idle_connections": len(self._idle)}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pop(self) -> _PoolEntry | None:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return None

    def _is_expired(self, entry: _PoolEntry) -> bool:
        return (time.monotonic() - entry.created_at) > self._max_age

    @staticmethod
    def _is_alive(conn: Any) -> bool:
        """Lightweight ping: attempt a no-op query to detect broken connections."""
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.close()
            return True
        except Exception:
            return False

    def _discard(self, conn: Any) -> None:
        with self._lock:
            self._created.pop(id(conn), None)
        try:
            conn.close()
        except Exception:
            _log.debug("Error closing pooled connection", exc_info=True)
