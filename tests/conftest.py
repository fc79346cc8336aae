import sqlite3
from collections.abc import Generator
from pathlib import Path

import pytest

from sqljson.models import DataSource, ProductTypeEnum

FOO_ROWS = [(1, "one"), (5, "five"), (7, "seven"), (9, "nine")]


def _create_foo(conn: sqlite3.Connection) -> None:
    conn.execute("CREATE TABLE foo (i INTEGER, s TEXT)")
    conn.executemany("INSERT INTO foo (i, s) VALUES (?, ?)", FOO_ROWS)
    conn.commit()


@pytest.fixture
def sqlite_path(tmp_path: Path) -> str:
    path = str(tmp_path / "test.db")
    conn = sqlite3.connect(path)
    try:
        _create_foo(conn)
    finally:
        conn.close()
    return path


@pytest.fixture
def sqlite_conn(sqlite_path: str) -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(sqlite_path, check_same_thread=False)
    yield conn
    conn.close()


@pytest.fixture
def sqlite_datasource(sqlite_path: str) -> DataSource:
    return DataSource(product_type=ProductTypeEnum.SQLITE, database=sqlite_path)
