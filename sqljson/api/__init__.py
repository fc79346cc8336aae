"""
HTTP adaptation: request arguments -> prepared query -> streamed JSON response.
"""

from sqljson.api.args import extract_arguments
from sqljson.api.handler import (
    ResponseSink,
    make_handler,
    mount_queries,
    mount_query,
    query_endpoint,
)

__all__ = [
    "ResponseSink",
    "extract_arguments",
    "make_handler",
    "mount_queries",
    "mount_query",
    "query_endpoint",
]
