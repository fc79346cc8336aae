"""
Stream query results into a Jinja2 template rendered on a separate thread.

The fetch loop hands each row (a list of values) to the render thread through
a ``RowChannel``; the render thread reports its outcome on a single-slot
queue. The template is rendered with:

    args     the argument mapping passed in
    columns  the result column names
    rows     an iterable of value lists, consumed lazily

If the template finishes before reading every row, the fetch loop stops on
its next send. The fetch loop always waits for the render thread before
returning, so nothing is written to the sink after the call returns.
A data-source error takes precedence over a render error.
"""

import logging
import queue
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from jinja2 import Template, TemplateError

from sqljson.core.config import settings
from sqljson.engines.sql.channel import RowChannel
from sqljson.engines.sql.errors import ExecutionError, RenderError
from sqljson.engines.sql.json_stream import Sink
from sqljson.engines.sql.rows import bind_arguments, row_values
from sqljson.engines.sql.statement import Statement
from sqljson.engines.sql.template_engine import get_template

_log = logging.getLogger(__name__)


def _render(
    template: Template,
    context: dict[str, Any],
    sink: Sink,
    channel: RowChannel,
    outcome: "queue.Queue[BaseException | None]",
) -> None:
    try:
        for chunk in template.generate(**context):
            sink.write(chunk)
    except BaseException as e:
        outcome.put(e)
    else:
        outcome.put(None)
    finally:
        channel.detach()


def stream_template(
    statement: Statement,
    names: Sequence[str],
    args: Mapping[str, Any] | None,
    template: Template | str,
    sink: Sink,
    *,
    channel_size: int | None = None,
) -> None:
    """
    Execute *statement* with *args* and render *template* over its rows.

    Raises ExecutionError for data-source failures, RenderError when only the
    template failed.
    """
    try:
        tpl = get_template(template)
    except TemplateError as e:
        raise RenderError(f"template compile failed: {e}") from e

    argv = bind_arguments(names, args)
    try:
        cursor = statement.execute(argv)
    except Exception as e:
        raise ExecutionError(f"query execution failed: {e}") from e

    with cursor:
        try:
            columns = cursor.columns()
        except Exception as e:
            raise ExecutionError(f"reading columns failed: {e}") from e

        channel = RowChannel(channel_size or settings.TEMPLATE_CHANNEL_SIZE)
        outcome: queue.Queue[BaseException | None] = queue.Queue(maxsize=1)
        context = {"args": dict(args or {}), "columns": columns, "rows": channel}
        threading.Thread(
            target=_render,
            args=(tpl, context, sink, channel, outcome),
            name="sqljson-render",
            daemon=True,
        ).start()

        source_error: Exception | None = None
        try:
            for values in cursor:
                if not channel.send(row_values(values)):
                    _log.debug("Template finished before the last row; stop fetching")
                    break
        except Exception as e:
            source_error = e
        finally:
            channel.close()
            render_error = outcome.get()

    if source_error is not None:
        raise ExecutionError(f"reading rows failed: {source_error}") from source_error
    if render_error is not None:
        raise RenderError(f"template render failed: {render_error}") from render_error
