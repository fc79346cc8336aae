"""
Engines: SQL placeholder rewriting and result streaming.
"""

from sqljson.engines.sql import (
    PreparedQuery,
    TemplateQuery,
    prepare,
    prepare_template,
    rewrite,
)

__all__ = [
    "PreparedQuery",
    "TemplateQuery",
    "prepare",
    "prepare_template",
    "rewrite",
]
