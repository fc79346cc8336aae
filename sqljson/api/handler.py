"""
HTTP endpoints for prepared queries.

Flow: extract arguments -> run the query on a worker thread writing into a
ResponseSink -> wait for the first chunk or the outcome.

- Nothing written: 200 with an empty body, or 500 with the error envelope
  ``{"success": false, "message": ..., "data": []}``.
- Rows written: a StreamingResponse carrying the headers the query set
  (Content-Type). A later failure can only be logged; the truncated array is
  already closed by the executor.

The worker blocks on the bounded sink when the client reads slowly; if the
client goes away, the sink is cancelled and the worker's next write fails, so
the thread always ends.
"""

import asyncio
import logging
import queue
import threading
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.requests import Request

from sqljson.api.args import extract_arguments
from sqljson.core.config import settings
from sqljson.engines.sql import ExecutionError, PreparedQuery, prepare

_log = logging.getLogger(__name__)

_POLL_SEC = 0.1


class ClientDisconnected(ConnectionError):
    """The HTTP client stopped reading the response."""


@dataclass(frozen=True)
class _Outcome:
    row_count: int
    error: Exception | None = None


class ResponseSink:
    """Writable, header-aware sink handing chunks to the response stream."""

    def __init__(self, maxsize: int | None = None) -> None:
        self.headers: dict[str, str] = {}
        self._queue: queue.Queue[bytes | _Outcome] = queue.Queue(
            maxsize if maxsize is not None else settings.HTTP_STREAM_QUEUE_SIZE
        )
        self._cancelled = threading.Event()

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def write(self, data: str) -> int:
        self._put(data.encode("utf-8"))
        return len(data)

    def finish(self, outcome: _Outcome) -> None:
        try:
            self._put(outcome)
        except ClientDisconnected:
            _log.debug("Client gone before query outcome: %s", outcome)

    def cancel(self) -> None:
        self._cancelled.set()

    def get(self) -> bytes | _Outcome:
        """Next chunk or the final outcome; gives up once cancelled."""
        while True:
            try:
                return self._queue.get(timeout=_POLL_SEC)
            except queue.Empty:
                if self._cancelled.is_set():
                    return _Outcome(0, ClientDisconnected("response cancelled"))

    def _put(self, item: bytes | _Outcome) -> None:
        while not self._cancelled.is_set():
            try:
                self._queue.put(item, timeout=_POLL_SEC)
                return
            except queue.Full:
                continue
        raise ClientDisconnected("client stopped reading the response")


def _invoke(prepared: PreparedQuery, args: dict[str, Any], sink: ResponseSink) -> None:
    try:
        n = prepared(args, sink)
    except ExecutionError as e:
        if isinstance(e.__cause__, ClientDisconnected):
            _log.debug("Client disconnected during %r", prepared.query)
            return
        outcome = _Outcome(e.row_count, e)
    except Exception as e:
        _log.exception("Query %r failed", prepared.query)
        outcome = _Outcome(0, e)
    else:
        outcome = _Outcome(n)
    sink.finish(outcome)


def _error_response(status_code: int, detail: str) -> JSONResponse:
    """Standard envelope { success: false, message, data: [] }."""
    body = {"success": False, "message": str(detail), "data": []}
    return JSONResponse(status_code=status_code, content=body)


async def _drain(
    request: Request, sink: ResponseSink, first: bytes
) -> AsyncIterator[bytes]:
    try:
        yield first
        while True:
            item = await asyncio.to_thread(sink.get)
            if isinstance(item, _Outcome):
                if item.error is not None:
                    _log.error("%s %s: %s", request.method, request.url, item.error)
                return
            yield item
    finally:
        sink.cancel()


def query_endpoint(
    prepared: PreparedQuery,
) -> Callable[[Request], Awaitable[Response]]:
    """Endpoint that streams *prepared* as JSON for each request."""

    async def endpoint(request: Request) -> Response:
        try:
            args = await extract_arguments(request, prepared.names)
        except HTTPException as he:
            return _error_response(he.status_code, str(he.detail))

        sink = ResponseSink()
        threading.Thread(
            target=_invoke,
            args=(prepared, args, sink),
            name="sqljson-query",
            daemon=True,
        ).start()

        first = await asyncio.to_thread(sink.get)
        if isinstance(first, _Outcome):
            if first.error is not None:
                _log.warning("%s %s: %s", request.method, request.url, first.error)
                return _error_response(500, str(first.error))
            return Response(status_code=200)
        return StreamingResponse(_drain(request, sink, first), headers=sink.headers)

    return endpoint


def make_handler(
    db: Any, query: str, **prepare_kwargs: Any
) -> Callable[[Request], Awaitable[Response]]:
    """Prepare *query* and return its endpoint. Raises PreparationError."""
    return query_endpoint(prepare(db, query, **prepare_kwargs))


def mount_query(
    router: APIRouter,
    path: str,
    db: Any,
    query: str,
    *,
    methods: Iterable[str] = ("GET", "POST", "PUT"),
    **prepare_kwargs: Any,
) -> PreparedQuery:
    """
    Prepare *query* and serve it at *path* on *router*.

    Path parameters in *path* (``/items/{first}``) take precedence over query,
    form and JSON body values. Returns the PreparedQuery; the caller owns it
    and closes it on shutdown.
    """
    prepared = prepare(db, query, **prepare_kwargs)
    router.add_api_route(
        path,
        query_endpoint(prepared),
        methods=list(methods),
        response_model=None,
    )
    return prepared


def mount_queries(
    router: APIRouter, db: Any, queries: Mapping[str, str], **prepare_kwargs: Any
) -> list[PreparedQuery]:
    """mount_query() for each ``path -> query``; logs the query that fails to prepare."""
    prepared: list[PreparedQuery] = []
    for path, query in queries.items():
        try:
            prepared.append(mount_query(router, path, db, query, **prepare_kwargs))
        except Exception:
            _log.error("Cannot serve %s: query %r failed to prepare", path, query)
            for p in prepared:
                p.close()
            raise
    return prepared
