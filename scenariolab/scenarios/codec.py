"""Exact JSON encoding of database column values.

JSON-native scalars pass through unchanged. Everything else becomes a marker
object ``{"__type__": <tag>, "data": <text>}`` that decodes back to an equal
Python value, so restored rows compare equal to captured rows.
"""

from __future__ import annotations

import base64
import datetime
import uuid
from decimal import Decimal
from typing import Any

JSON_SCALARS = (str, int, float, bool, type(None))


def encode_value(value: Any) -> Any:
    """Encode one column value for JSON serialization.

    Raises:
        TypeError: If the value type has no exact encoding.
    """
    if isinstance(value, JSON_SCALARS):
        return value
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime.datetime):
        return {"__type__": "datetime", "data": value.isoformat()}
    if isinstance(value, datetime.date):
        return {"__type__": "date", "data": value.isoformat()}
    if isinstance(value, datetime.time):
        return {"__type__": "time", "data": value.isoformat()}
    if isinstance(value, datetime.timedelta):
        return {
            "__type__": "timedelta",
            "data": f"{value.days}:{value.seconds}:{value.microseconds}",
        }
    if isinstance(value, Decimal):
        return {"__type__": "decimal", "data": str(value)}
    if isinstance(value, uuid.UUID):
        return {"__type__": "uuid", "data": str(value)}
    if isinstance(value, bytes | bytearray | memoryview):
        return {"__type__": "bytes", "data": base64.b64encode(bytes(value)).decode("utf-8")}
    if isinstance(value, dict | list):
        return {"__type__": "json", "data": value}
    raise TypeError(f"Cannot encode column value of type {type(value).__name__}")


def decode_value(value: Any) -> Any:
    """Decode a value produced by :func:`encode_value`.

    Raises:
        ValueError: If a marker object carries an unknown tag or bad data.
    """
    if not isinstance(value, dict):
        return value

    tag = value.get("__type__")
    data = value.get("data")
    if tag == "datetime":
        return datetime.datetime.fromisoformat(data)
    if tag == "date":
        return datetime.date.fromisoformat(data)
    if tag == "time":
        return datetime.time.fromisoformat(data)
    if tag == "timedelta":
        days, seconds, microseconds = (int(part) for part in data.split(":"))
        return datetime.timedelta(days=days, seconds=seconds, microseconds=microseconds)
    if tag == "decimal":
        return Decimal(data)
    if tag == "uuid":
        return uuid.UUID(data)
    if tag == "bytes":
        return base64.b64decode(data)
    if tag == "json":
        return data
    raise ValueError(f"Unknown value marker: {tag!r}")


def encode_row(row: tuple[Any, ...] | list[Any]) -> list[Any]:
    return [encode_value(v) for v in row]


def decode_row(row: list[Any]) -> tuple[Any, ...]:
    return tuple(decode_value(v) for v in row)
