"""
Stream query results to a writer as a JSON array, one object per row.

Framing is deferred until the first row is ready: with zero rows the sink sees
no bytes and no header, so the caller can still answer with an error of its
own. Once the opening bracket is out, the closing bracket is written on every
exit path; a failure after that point leaves a well-formed but truncated
array and is raised as ``MidStreamError``.

Output for two rows::

    [
    {"int":5,"string":"five"},
    {"int":9,"string":"nine"}
    ]

(no newline after the closing bracket).
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from sqljson.core.config import settings
from sqljson.engines.sql.errors import ExecutionError, MidStreamError
from sqljson.engines.sql.rows import bind_arguments, encode_row, shape_row
from sqljson.engines.sql.statement import Statement

_log = logging.getLogger(__name__)


class Sink(Protocol):
    def write(self, data: str, /) -> Any: ...


def _set_content_type(sink: Sink, content_type: str) -> None:
    """Set the content type on sinks that expose ``set_header`` (HTTP responses)."""
    set_header = getattr(sink, "set_header", None)
    if callable(set_header):
        set_header("Content-Type", content_type)


def stream_json(
    statement: Statement,
    names: Sequence[str],
    args: Mapping[str, Any] | None,
    sink: Sink,
    *,
    content_type: str | None = None,
    sort_keys: bool | None = None,
) -> int:
    """
    Execute *statement* with *args* and write the rows to *sink* as JSON.

    Returns the number of rows written. Raises ExecutionError when nothing has
    been written, MidStreamError (with ``row_count``) after output began.
    """
    content_type = content_type or settings.JSON_CONTENT_TYPE
    if sort_keys is None:
        sort_keys = settings.JSON_SORT_KEYS

    argv = bind_arguments(names, args)
    try:
        cursor = statement.execute(argv)
    except Exception as e:
        raise ExecutionError(f"query execution failed: {e}") from e

    n = 0
    opened = False
    error: Exception | None = None
    with cursor:
        try:
            columns = cursor.columns()
            for values in cursor:
                data = encode_row(shape_row(columns, values), sort_keys=sort_keys)
                if not opened:
                    _set_content_type(sink, content_type)
                    opened = True
                    sink.write("[\n")
                else:
                    sink.write(",\n")
                sink.write(data)
                n += 1
        except Exception as e:
            error = e
        finally:
            if opened:
                try:
                    sink.write("\n]")
                except Exception as e:
                    if error is None:
                        error = e
                    else:
                        _log.debug("Closing bracket not written: %s", e)

    if error is None:
        return n
    if opened:
        _log.debug("JSON stream failed after %d rows: %s", n, error)
        raise MidStreamError(
            f"stream failed after {n} rows: {error}", row_count=n
        ) from error
    raise ExecutionError(f"reading rows failed: {error}") from error
