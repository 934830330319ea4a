"""Text helpers for log messages: argument joining, map encoding, template parsing."""

from __future__ import annotations

import math
from datetime import timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _append_any(value: Any) -> str:
    """Render one value the way log message arguments are rendered."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, timedelta):
        # Durations are rendered as whole nanoseconds.
        return str((value.days * 86400 + value.seconds) * 10**9 + value.microseconds * 1000)
    if isinstance(value, BaseException):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_append_any(item) for item in value) + "]"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "map[" + " ".join(f"{_append_any(k)}:{_append_any(v)}" for k, v in items) + "]"
    return str(value)


def _any_to_string(value: Any) -> str:
    if value is None:
        return ""
    return _append_any(value)


def format_args_with_spaces(args: Optional[Iterable[Any]]) -> str:
    """Join the arguments with single spaces, like a print of several values."""
    values = list(args or ())
    if not values:
        return ""
    if len(values) == 1:
        return _any_to_string(values[0])
    return " ".join(_append_any(value) for value in values)


def _map_to_string(mapping: dict) -> str:
    if not mapping:
        return "{}"
    return "{" + ", ".join(f"{key}:{_any_to_string(val)}" for key, val in mapping.items()) + "}"


def encode_to_string(value: Any) -> str:
    """Encode a value to text; dicts become ``{key:value, ...}``."""
    if isinstance(value, dict):
        return _map_to_string(value)
    return _any_to_string(value)


def parse_template_to_fields(template: str) -> list[str]:
    """Split a ``{{field}}`` template into field names and the text that follows them.

    Each field name is followed by a piece starting with ``}}``.
    """
    parts: list[str] = []
    for chunk in template.split("{{"):
        if not chunk:
            continue
        name, sep, rest = chunk.partition("}}")
        if sep:
            parts.extend((name, "}}" + rest))
        else:
            parts.append(chunk)
    return parts