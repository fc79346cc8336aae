"""
Build a prepared query's argument mapping from an HTTP request.

Only the query's own placeholder names are looked up. Precedence per name:
path parameter > form/query-string value (empty counts as absent) > JSON body.
The JSON body is read for POST/PUT with Content-Type application/json, up to
REQUEST_JSON_MAX_BYTES; an empty body is allowed.
"""

import json
from collections.abc import Sequence
from typing import Any

from fastapi import HTTPException
from starlette.requests import Request

from sqljson.core.config import settings


def _content_type(request: Request) -> str:
    ct = request.headers.get("content-type") or "application/octet-stream"
    return ct.split(";")[0].strip().lower()


async def _read_limited(request: Request, limit: int) -> bytes:
    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        chunks.append(chunk)
        size += len(chunk)
        if size >= limit:
            break
    return b"".join(chunks)[:limit]


async def _read_json_body(request: Request) -> dict[str, Any]:
    if request.method not in ("POST", "PUT"):
        return {}
    if _content_type(request) != "application/json":
        return {}
    raw = await _read_limited(request, settings.REQUEST_JSON_MAX_BYTES)
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Can't decode json request: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise HTTPException(
            status_code=400,
            detail="Can't decode json request: expected a JSON object",
        )
    return data


async def _read_form(request: Request) -> dict[str, str]:
    if _content_type(request) not in (
        "application/x-www-form-urlencoded",
        "multipart/form-data",
    ):
        return {}
    form = await request.form()
    # file uploads are not query arguments
    return {k: v for k, v in form.items() if isinstance(v, str)}


async def extract_arguments(request: Request, names: Sequence[str]) -> dict[str, Any]:
    """Argument mapping for *names*; names found nowhere are left out."""
    json_args = await _read_json_body(request)
    form = await _read_form(request)
    path_params = request.path_params
    query = request.query_params

    args: dict[str, Any] = {}
    for name in names:
        if name in path_params:
            args[name] = path_params[name]
            continue
        v = form.get(name) or query.get(name)
        if v:
            args[name] = v
            continue
        if name in json_args:
            args[name] = json_args[name]
    return args
