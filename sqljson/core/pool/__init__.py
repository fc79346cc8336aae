"""
DB connections and a connection pool for DataSources.
"""

from .connect import connect
from .manager import ConnectionPool

__all__ = [
    "connect",
    "ConnectionPool",
]
