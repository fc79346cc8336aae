"""
sqljson: expose SQL queries with ${name} placeholders as streaming JSON.
"""

from sqljson.engines.sql import (
    ExecutionError,
    MidStreamError,
    PlaceholderStyle,
    PreparationError,
    PreparedQuery,
    RenderError,
    SQLJsonError,
    TemplateQuery,
    prepare,
    prepare_template,
    rewrite,
)

__all__ = [
    "ExecutionError",
    "MidStreamError",
    "PlaceholderStyle",
    "PreparationError",
    "PreparedQuery",
    "RenderError",
    "SQLJsonError",
    "TemplateQuery",
    "prepare",
    "prepare_template",
    "rewrite",
]
