"""Unit tests for core.pool (connect + ConnectionPool)."""

import sqlite3
from unittest.mock import MagicMock, patch

import pytest

from sqljson.core.pool import ConnectionPool, connect
from sqljson.core.pool import manager as pool_manager
from sqljson.models import DataSource, ProductTypeEnum


class TestConnect:
    def test_sqlite(self, sqlite_datasource: DataSource) -> None:
        conn = connect(sqlite_datasource)
        try:
            assert isinstance(conn, sqlite3.Connection)
            assert conn.execute("SELECT count(*) FROM foo").fetchone()[0] == 4
        finally:
            conn.close()

    def test_postgres_defaults(self) -> None:
        ds = DataSource(
            product_type=ProductTypeEnum.POSTGRES,
            host="db",
            database="app",
            username="u",
        )
        with patch("psycopg.connect") as pg:
            connect(ds)
        kwargs = pg.call_args.kwargs
        assert kwargs["host"] == "db"
        assert kwargs["port"] == 5432
        assert kwargs["dbname"] == "app"
        assert kwargs["password"] == ""

    def test_mysql_port(self) -> None:
        ds = DataSource(
            product_type=ProductTypeEnum.MYSQL,
            host="db",
            port=3307,
            database="app",
            username="u",
            password="p",
        )
        with patch("pymysql.connect") as my:
            connect(ds)
        assert my.call_args.kwargs["port"] == 3307
        assert my.call_args.kwargs["password"] == "p"

    def test_missing_host(self) -> None:
        ds = DataSource(product_type=ProductTypeEnum.POSTGRES, database="app", username="u")
        with pytest.raises(ValueError, match="host"):
            connect(ds)


class TestConnectionPool:
    def test_reuses_released_connection(self, sqlite_datasource: DataSource) -> None:
        pool = ConnectionPool(sqlite_datasource, size=2)
        c1 = pool.get_connection()
        pool.release(c1)
        assert pool.stats() == {"idle_connections": 1}
        assert pool.get_connection() is c1
        pool.release(c1)
        pool.dispose()
        assert pool.stats() == {"idle_connections": 0}

    def test_size_limit_closes_extra(self) -> None:
        ds = DataSource(product_type=ProductTypeEnum.SQLITE, database=":memory:")
        conns = [MagicMock(), MagicMock()]
        with patch.object(pool_manager, "connect", side_effect=conns):
            pool = ConnectionPool(ds, size=1)
            a = pool.get_connection()
            b = pool.get_connection()
        pool.release(a)
        pool.release(b)
        assert pool.stats()["idle_connections"] == 1
        b.close.assert_called_once()
        a.close.assert_not_called()

    def test_expired_connection_replaced(self) -> None:
        ds = DataSource(product_type=ProductTypeEnum.SQLITE, database=":memory:")
        old, new = MagicMock(), MagicMock()
        with patch.object(pool_manager, "connect", side_effect=[old, new]):
            pool = ConnectionPool(ds, max_age=0)
            pool.release(pool.get_connection())
            assert pool.get_connection() is new
        old.close.assert_called_once()

    def test_failed_rollback_discards(self) -> None:
        ds = DataSource(product_type=ProductTypeEnum.SQLITE, database=":memory:")
        conn = MagicMock()
        conn.rollback.side_effect = RuntimeError("gone")
        with patch.object(pool_manager, "connect", return_value=conn):
            pool = ConnectionPool(ds)
            pool.release(pool.get_connection())
        assert pool.stats()["idle_connections"] == 0
        conn.close.assert_called_once()

    def test_product_type(self, sqlite_datasource: DataSource) -> None:
        assert ConnectionPool(sqlite_datasource).product_type == ProductTypeEnum.SQLITE
