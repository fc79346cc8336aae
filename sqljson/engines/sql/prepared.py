"""
Prepared queries: rewrite once, check once, invoke many times.

    q = prepare(conn, "SELECT i AS int FROM foo WHERE i > ${first}")
    n = q({"first": 3}, sink)            # JSON array to sink, returns row count

    t = prepare_template(conn, "SELECT s FROM foo")
    t({}, "{% for r in rows %}{{ r[0] }}\\n{% endfor %}", sink)

``db`` is a DB-API connection or a ``ConnectionPool``. The placeholder style
defaults to the dialect's; pass ``style=`` to choose one per query. A prepared
query owns its statement and must be closed by its owner (``close()`` or a
``with`` block); it never closes the connection or pool.
"""

import logging
from collections.abc import Mapping
from typing import Any

from jinja2 import Template

from sqljson.core.config import settings
from sqljson.engines.sql.dialects import Dialect, dialect_for
from sqljson.engines.sql.errors import PreparationError
from sqljson.engines.sql.json_stream import Sink, stream_json
from sqljson.engines.sql.rewriter import PlaceholderStyle, rewrite
from sqljson.engines.sql.statement import Statement
from sqljson.engines.sql.template_stream import stream_template

_log = logging.getLogger(__name__)


class _Prepared:
    def __init__(
        self, query: str, sql: str, names: list[str], statement: Statement
    ) -> None:
        self.query = query
        self._sql = sql
        self._names = tuple(names)
        self._statement = statement

    @property
    def sql(self) -> str:
        """The rewritten SQL sent to the driver."""
        return self._sql

    @property
    def names(self) -> tuple[str, ...]:
        """Argument names, in positional order."""
        return self._names

    @property
    def closed(self) -> bool:
        return self._statement.closed

    def close(self) -> None:
        self._statement.close()

    def __enter__(self) -> Any:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._sql!r}, names={list(self._names)!r})"


class PreparedQuery(_Prepared):
    """Callable ``(args, sink) -> row count`` writing rows as a JSON array."""

    def __call__(self, args: Mapping[str, Any] | None, sink: Sink) -> int:
        return stream_json(self._statement, self._names, args, sink)


class TemplateQuery(_Prepared):
    """Callable ``(args, template, sink) -> None`` rendering rows through Jinja2."""

    def __call__(
        self, args: Mapping[str, Any] | None, template: Template | str, sink: Sink
    ) -> None:
        stream_template(self._statement, self._names, args, template, sink)


def _build(
    db: Any,
    query: str,
    style: PlaceholderStyle | str | None,
    dialect: Dialect | None,
    fetch_size: int | None,
) -> tuple[str, list[str], Statement]:
    dialect = dialect or dialect_for(db)
    style = PlaceholderStyle(style) if style is not None else dialect.default_style()
    sql, names = rewrite(query, style)
    _log.debug("Rewrote query (%s, %s): %s", dialect.name, style.value, sql)

    statement = Statement(
        db,
        sql,
        dialect,
        fetch_size=settings.SQL_FETCH_SIZE if fetch_size is None else fetch_size,
    )
    try:
        statement.compile(len(names))
    except Exception as e:
        raise PreparationError(f"prepare {query!r} failed: {e}") from e
    return sql, names, statement


def prepare(
    db: Any,
    query: str,
    *,
    style: PlaceholderStyle | str | None = None,
    dialect: Dialect | None = None,
    fetch_size: int | None = None,
) -> PreparedQuery:
    """
    Prepare *query* (with ``${name}`` placeholders) for JSON streaming.

    Raises PreparationError if the database rejects the rewritten statement.
    """
    sql, names, statement = _build(db, query, style, dialect, fetch_size)
    return PreparedQuery(query, sql, names, statement)


def prepare_template(
    db: Any,
    query: str,
    *,
    style: PlaceholderStyle | str | None = None,
    dialect: Dialect | None = None,
    fetch_size: int | None = None,
) -> TemplateQuery:
    """Like prepare(), for rendering rows through a template."""
    sql, names, statement = _build(db, query, style, dialect, fetch_size)
    return TemplateQuery(query, sql, names, statement)
