"""Tolerant conversion of stored date values."""

from __future__ import annotations

import datetime
from datetime import UTC
from typing import Any


def coerce_datetime(value: Any) -> datetime.datetime | None:
    """Return ``value`` as an aware UTC datetime, or ``None``.

    Stored dates arrive in several shapes: ISO strings (with or without a
    trailing ``Z``), :class:`datetime.date`/:class:`datetime.datetime`
    objects, epoch seconds, or a timestamp mapping carrying ``seconds`` (and
    optionally ``nanoseconds``). Anything else, including strings that do not
    parse, yields ``None``. Naive values are taken to be UTC.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime.datetime):
        result = value
    elif isinstance(value, datetime.date):
        result = datetime.datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            return datetime.datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            result = datetime.datetime.fromisoformat(text)
        except ValueError:
            return None
    elif isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if not isinstance(seconds, (int, float)) or isinstance(seconds, bool):
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return coerce_datetime(seconds + nanos / 1e9)
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=UTC)
    return result.astimezone(UTC)
