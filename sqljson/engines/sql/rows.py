"""
Row shaping shared by the JSON and template executors.

Byte-string column values are part of the output contract: they are decoded
to text before a row is serialized or handed to a template, so binary payloads
are never distinguished from text.
"""

import json
import uuid
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any


def bind_arguments(names: Sequence[str], args: Mapping[str, Any] | None) -> list[Any]:
    """Positional argument vector for *names*; missing keys bind as None (NULL)."""
    args = args or {}
    return [args.get(n) for n in names]


def normalize_value(value: Any) -> Any:
    """Decode bytes-like column values to str; everything else is unchanged."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, memoryview):
        return value.tobytes().decode("utf-8", errors="replace")
    return value


def row_values(values: Sequence[Any]) -> list[Any]:
    return [normalize_value(v) for v in values]


def shape_row(columns: Sequence[str], values: Sequence[Any]) -> dict[str, Any]:
    """Column name -> normalized value, in driver column order."""
    if len(columns) != len(values):
        raise ValueError(
            f"row has {len(values)} values but the result has {len(columns)} columns"
        )
    return dict(zip(columns, row_values(values)))


def _json_default(obj: Any) -> Any:
    """JSON fallback for the non-JSON types DB drivers commonly return."""
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Decimal):
        # Preserve integer-valued decimals as int, otherwise float
        if obj.is_finite() and obj == obj.to_integral_value():
            return int(obj)
        return float(obj)
    if isinstance(obj, uuid.UUID):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_row(row: Mapping[str, Any], *, sort_keys: bool = False) -> str:
    """Compact JSON object for one row. Raises TypeError/ValueError on failure."""
    return json.dumps(
        row,
        default=_json_default,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=sort_keys,
        allow_nan=False,
    )
