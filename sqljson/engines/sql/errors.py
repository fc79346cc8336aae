"""
Errors raised while preparing and streaming queries.

Driver and template exceptions are chained as ``__cause__``.
"""


class SQLJsonError(Exception):
    """Base class for all sqljson errors."""


class PreparationError(SQLJsonError):
    """The driver rejected the rewritten SQL. Terminal for that query."""


class ExecutionError(SQLJsonError):
    """
    Executing the query or reading its rows failed.

    ``row_count`` is the number of rows already written to the sink. While it
    is 0 nothing at all has been written, so the caller is free to send a
    different response instead.
    """

    def __init__(self, message: str, *, row_count: int = 0) -> None:
        super().__init__(message)
        self.row_count = row_count


class MidStreamError(ExecutionError):
    """
    A failure after output began. The JSON array has been closed, but it is
    truncated; the error can only be reported out of band.
    """


class RenderError(SQLJsonError):
    """The template failed to render while the data source was error-free."""
