"""
SQL streaming engine: ${name} placeholder rewriting, prepared queries, and
streaming of result rows as a JSON array or through a Jinja2 template.

Exports: prepare, prepare_template, rewrite, stream_json, stream_template.
"""

from sqljson.engines.sql.dialects import (
    Dialect,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    dialect_for,
)
from sqljson.engines.sql.errors import (
    ExecutionError,
    MidStreamError,
    PreparationError,
    RenderError,
    SQLJsonError,
)
from sqljson.engines.sql.json_stream import stream_json
from sqljson.engines.sql.prepared import (
    PreparedQuery,
    TemplateQuery,
    prepare,
    prepare_template,
)
from sqljson.engines.sql.rewriter import PlaceholderStyle, rewrite
from sqljson.engines.sql.template_stream import stream_template

__all__ = [
    "Dialect",
    "ExecutionError",
    "MidStreamError",
    "MySQLDialect",
    "PlaceholderStyle",
    "PostgresDialect",
    "PreparationError",
    "PreparedQuery",
    "RenderError",
    "SQLJsonError",
    "SQLiteDialect",
    "TemplateQuery",
    "dialect_for",
    "prepare",
    "prepare_template",
    "rewrite",
    "stream_json",
    "stream_template",
]
