"""Tests for prepare_template() and the concurrent template executor."""

import io
import sqlite3
import threading

import pytest
from jinja2 import Template

from sqljson.engines.sql import (
    ExecutionError,
    RenderError,
    TemplateQuery,
    prepare_template,
)
from sqljson.engines.sql.dialects import Dialect
from sqljson.engines.sql.statement import Statement
from sqljson.engines.sql.template_engine import get_template
from sqljson.engines.sql.template_stream import stream_template
from tests.utils.fakes import FakeConnection

QUERY = "SELECT i AS int, s AS string FROM foo WHERE i > ${first} AND NOT s LIKE ${pat}"
ARGS = {"first": 3, "pat": "%eve%"}

ROWS_TPL = "{% for r in rows %}{{ r[0] }}={{ r[1] }};{% endfor %}"


def _render_threads() -> list[threading.Thread]:
    return [t for t in threading.enumerate() if t.name == "sqljson-render"]


class TestSqlite:
    def test_renders_rows_in_order(self, sqlite_conn: sqlite3.Connection) -> None:
        q = prepare_template(sqlite_conn, QUERY)
        assert isinstance(q, TemplateQuery)
        out = io.StringIO()
        q(ARGS, ROWS_TPL, out)
        assert out.getvalue() == "5=five;9=nine;"

    def test_args_and_columns_in_context(self, sqlite_conn: sqlite3.Connection) -> None:
        q = prepare_template(sqlite_conn, QUERY)
        out = io.StringIO()
        q(ARGS, "{{ columns|join(',') }}|{{ args.first }}|{{ args.pat }}", out)
        assert out.getvalue() == "int,string|3|%eve%"

    def test_zero_rows(self, sqlite_conn: sqlite3.Connection) -> None:
        q = prepare_template(sqlite_conn, QUERY)
        out = io.StringIO()
        q({"first": 100, "pat": "%"}, "[{% for r in rows %}x{% endfor %}]", out)
        assert out.getvalue() == "[]"

    def test_compiled_template_accepted(self, sqlite_conn: sqlite3.Connection) -> None:
        q = prepare_template(sqlite_conn, QUERY)
        out = io.StringIO()
        q(ARGS, Template("{% for r in rows %}{{ r[1] }} {% endfor %}"), out)
        assert out.getvalue() == "five nine "

    def test_autoescape(self, sqlite_conn: sqlite3.Connection) -> None:
        q = prepare_template(sqlite_conn, "SELECT ${v} AS v")
        out = io.StringIO()
        q({"v": "<b>"}, "{% for r in rows %}{{ r[0] }}{% endfor %}", out)
        assert out.getvalue() == "&lt;b&gt;"


class TestConcurrency:
    def test_early_finish_stops_fetching(self) -> None:
        conn = FakeConnection(["x"], [(i,) for i in range(100)])
        q = prepare_template(conn, "SELECT x")
        out = io.StringIO()
        q({}, "{{ (rows|first)[0] }}", out)
        assert out.getvalue() == "0"
        # at most one row beyond the one in flight
        assert conn.cursors[-1].fetched <= 3
        assert conn.cursors[-1].closed

    def test_render_thread_finished_on_return(self) -> None:
        conn = FakeConnection(["x"], [(i,) for i in range(50)])
        q = prepare_template(conn, "SELECT x")
        q({}, "{% for r in rows %}{{ r[0] }}{% endfor %}", io.StringIO())
        for t in _render_threads():
            t.join(timeout=1)
        assert _render_threads() == []

    def test_larger_channel(self) -> None:
        conn = FakeConnection(["x"], [(i,) for i in range(20)])
        statement = Statement(conn, "SELECT x", Dialect())
        out = io.StringIO()
        stream_template(
            statement,
            [],
            {},
            "{% for r in rows %}{{ r[0] }},{% endfor %}",
            out,
            channel_size=8,
        )
        assert out.getvalue() == ",".join(str(i) for i in range(20)) + ","


class TestErrors:
    def test_template_syntax_error_before_execute(self) -> None:
        conn = FakeConnection(["x"], [(1,)])
        q = prepare_template(conn, "SELECT x")
        with pytest.raises(RenderError):
            q({}, "{% for %}", io.StringIO())
        assert conn.executed == []

    def test_render_error(self) -> None:
        conn = FakeConnection(["x"], [(1,), (2,)])
        q = prepare_template(conn, "SELECT x")
        with pytest.raises(RenderError) as ei:
            q({}, "{% for r in rows %}{{ r[0] // 0 }}{% endfor %}", io.StringIO())
        assert isinstance(ei.value.__cause__, ZeroDivisionError)
        assert conn.cursors[-1].closed

    def test_data_error_wins_over_render_error(self) -> None:
        conn = FakeConnection(["x"], [(1,), (2,)], fail_at=1)
        q = prepare_template(conn, "SELECT x")
        with pytest.raises(ExecutionError):
            q({}, "{% for r in rows %}{{ r[0] // 0 }}{% endfor %}", io.StringIO())

    def test_fetch_error_waits_for_renderer(self) -> None:
        conn = FakeConnection(["x"], [(1,), (2,), (3,)], fail_at=2)
        q = prepare_template(conn, "SELECT x")
        out = io.StringIO()
        with pytest.raises(ExecutionError):
            q({}, "{% for r in rows %}{{ r[0] }},{% endfor %}tail", out)
        assert out.getvalue() == "1,2,tail"

    def test_execute_error(self) -> None:
        conn = FakeConnection(["x"], execute_error=RuntimeError("down"))
        q = prepare_template(conn, "SELECT x")
        out = io.StringIO()
        with pytest.raises(ExecutionError):
            q({}, "never", out)
        assert out.getvalue() == ""


def test_template_cache_reuses_compiled() -> None:
    src = "{{ args }}-cache-test"
    assert get_template(src) is get_template(src)
