"""
Per-database placeholder defaults and prepare-time statement checks.

DB-API has no portable "prepare" call, so each dialect compiles the statement
text with the database's own facility (EXPLAIN / PREPARE) without running it.
The text checked is the SQL the statement executes, bound the way the driver
binds it. Driver errors from ``probe()`` propagate to the caller.
"""

import logging
import re
import uuid
from collections.abc import Callable
from typing import Any

import psycopg

from sqljson.core.config import settings
from sqljson.core.pool import ConnectionPool
from sqljson.engines.sql.rewriter import PlaceholderStyle
from sqljson.models import ProductTypeEnum

_log = logging.getLogger(__name__)

_FORMAT_MARKER_RE = re.compile(r"%(.?)", re.DOTALL)


def _probe_name() -> str:
    return f"sqljson_probe_{uuid.uuid4().hex[:12]}"


def _bind_format(sql: str, nparams: int, marker: Callable[[int], str]) -> str:
    """
    Server-side text of *sql* as a ``%s`` driver sends it with *nparams* values.

    ``%s`` becomes ``marker(position)`` and ``%%`` a literal ``%``. Any other
    ``%`` sequence, or a marker count that differs from *nparams*, is rejected
    as the driver would reject it on execute.
    """
    count = 0

    def _sub(m: re.Match[str]) -> str:
        nonlocal count
        if m.group(1) == "%":
            return "%"
        if m.group(1) == "s":
            count += 1
            return marker(count)
        raise ValueError(f"unsupported format sequence {m.group(0)!r} in query")

    native = _FORMAT_MARKER_RE.sub(_sub, sql)
    if count != nparams:
        raise ValueError(
            f"the query has {count} placeholders but {nparams} parameters are bound"
        )
    return native


class Dialect:
    """Generic DB-API database: no prepare-time check."""

    name: str = "generic"
    placeholder_style: PlaceholderStyle | None = None

    def default_style(self) -> PlaceholderStyle:
        if self.placeholder_style is not None:
            return self.placeholder_style
        return PlaceholderStyle(settings.SQL_PLACEHOLDER_STYLE)

    def probe(self, conn: Any, sql: str, nparams: int) -> None:
        """Compile the statement *sql* (bound with *nparams* values) without executing it."""
        return None


class SQLiteDialect(Dialect):
    """SQLite (``?`` parameters); checked with EXPLAIN and NULL arguments."""

    name = "sqlite"
    placeholder_style = PlaceholderStyle.QMARK

    def probe(self, conn: Any, sql: str, nparams: int) -> None:
        cur = conn.cursor()
        try:
            cur.execute(f"EXPLAIN {sql}", [None] * nparams)
            cur.fetchall()
        finally:
            cur.close()


class PostgresDialect(Dialect):
    """PostgreSQL via psycopg (``%s`` parameters); checked with PREPARE."""

    name = "postgres"
    placeholder_style = PlaceholderStyle.FORMAT

    def probe(self, conn: Any, sql: str, nparams: int) -> None:
        # psycopg sends %s as $n, which is also what PREPARE takes
        native = _bind_format(sql, nparams, lambda i: f"${i}")
        name = _probe_name()
        was_idle = (
            conn.info.transaction_status == psycopg.pq.TransactionStatus.IDLE
        )
        cur = conn.cursor()
        try:
            cur.execute(f"PREPARE {name} AS {native}")
            cur.execute(f"DEALLOCATE {name}")
        except Exception:
            # the failed PREPARE aborted the transaction
            conn.rollback()
            raise
        finally:
            cur.close()
        if was_idle:
            conn.rollback()


class MySQLDialect(Dialect):
    """MySQL via pymysql (``%s`` parameters); checked with PREPARE ... FROM."""

    name = "mysql"
    placeholder_style = PlaceholderStyle.FORMAT

    def probe(self, conn: Any, sql: str, nparams: int) -> None:
        native = _bind_format(sql, nparams, lambda i: "?")
        name = _probe_name()
        cur = conn.cursor()
        try:
            cur.execute(f"PREPARE {name} FROM %s", (native,))
            cur.execute(f"DEALLOCATE PREPARE {name}")
        finally:
            cur.close()


_BY_PRODUCT: dict[ProductTypeEnum, type[Dialect]] = {
    ProductTypeEnum.SQLITE: SQLiteDialect,
    ProductTypeEnum.POSTGRES: PostgresDialect,
    ProductTypeEnum.MYSQL: MySQLDialect,
}

_BY_DRIVER_MODULE: dict[str, type[Dialect]] = {
    "sqlite3": SQLiteDialect,
    "_sqlite3": SQLiteDialect,
    "psycopg": PostgresDialect,
    "pymysql": MySQLDialect,
}


def dialect_for(db: Any) -> Dialect:
    """Pick the dialect for a ConnectionPool or a DB-API connection."""
    if isinstance(db, ConnectionPool):
        return _BY_PRODUCT[db.product_type]()
    root = type(db).__module__.split(".")[0]
    cls = _BY_DRIVER_MODULE.get(root, Dialect)
    _log.debug("Using %s dialect for %s", cls.name, type(db).__qualname__)
    return cls()
