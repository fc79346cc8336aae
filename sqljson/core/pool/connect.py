"""
DB connection helpers for DataSources.

Uses psycopg (PostgreSQL), pymysql (MySQL), or sqlite3 based on product_type.
"""

import sqlite3
from typing import Any

import psycopg
import pymysql

from sqljson.core.config import settings
from sqljson.models import DataSource, ProductTypeEnum


def connect(datasource: DataSource) -> Any:
    """
    Open a DB-API connection for *datasource*.

    - Postgres and MySQL need host, database and username; port defaults to
      the product's standard port.
    - SQLite opens ``database`` as a file path with check_same_thread=False,
      since pooled connections are handed between threads.
    """
    pt = datasource.product_type
    timeout = settings.EXTERNAL_DB_CONNECT_TIMEOUT

    if pt == ProductTypeEnum.SQLITE:
        return sqlite3.connect(
            datasource.database, timeout=timeout, check_same_thread=False
        )

    for name in ("host", "username"):
        if getattr(datasource, name) is None:
            raise ValueError(f"datasource must provide {name}")
    password = datasource.password if datasource.password is not None else ""

    if pt == ProductTypeEnum.POSTGRES:
        return psycopg.connect(
            host=datasource.host,
            port=int(datasource.port or 5432),
            dbname=datasource.database,
            user=datasource.username,
            password=password,
            connect_timeout=timeout,
        )
    if pt == ProductTypeEnum.MYSQL:
        return pymysql.connect(
            host=datasource.host,
            port=int(datasource.port or 3306),
            database=datasource.database,
            user=datasource.username,
            password=password,
            connect_timeout=timeout,
        )
    raise ValueError(f"Unsupported product_type: {pt}")
