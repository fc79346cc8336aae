"""
Connection descriptors for the databases a prepared query can run against.
"""

from enum import Enum

from pydantic import BaseModel


class ProductTypeEnum(str, Enum):
    """Supported database product types (postgres, mysql, sqlite)."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class DataSource(BaseModel):
    """Where to connect. For sqlite, ``database`` is the file path."""

    product_type: ProductTypeEnum
    database: str
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
