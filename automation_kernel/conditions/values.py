"""
Tagged payload values and the coercion rules the condition operators use.

Payloads arrive loosely typed (JSON from the host application). Rather than
leaning on implicit runtime coercion, every value is classified into a
ValueKind and the operators compare values through the explicit helpers
below, so the same rule behaves identically wherever it runs.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional


class ValueKind(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    TIMESTAMP = "timestamp"
    MAP = "map"
    LIST = "list"
    OTHER = "other"


def kind_of(value: Any) -> ValueKind:
    """Classify a raw payload value."""
    if value is None:
        return ValueKind.NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float, Decimal)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (datetime, date)):
        return ValueKind.TIMESTAMP
    if isinstance(value, dict):
        return ValueKind.MAP
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    return ValueKind.OTHER


def as_number(value: Any) -> Optional[float]:
    """Numeric reading of a value: numbers and numeric strings; never booleans."""
    kind = kind_of(value)
    if kind == ValueKind.NUMBER:
        number = float(value)
    elif kind == ValueKind.STRING:
        text = value.strip()
        if not text:
            return None
        try:
            number = float(Decimal(text))
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def as_timestamp(value: Any) -> Optional[datetime]:
    """Timestamp reading of a value: datetimes, dates and ISO-8601 strings."""
    kind = kind_of(value)
    if kind == ValueKind.TIMESTAMP:
        if isinstance(value, datetime):
            parsed = value
        else:
            parsed = datetime(value.year, value.month, value.day)
    elif kind == ValueKind.STRING:
        text = value.strip()
        # Bare numbers are numbers, not years
        if not text or as_number(text) is not None:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    # Naive timestamps are taken as UTC so they order against aware ones
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_text(value: Any) -> str:
    """Canonical text form used when no stronger comparison applies."""
    kind = kind_of(value)
    if kind == ValueKind.NULL:
        return ""
    if kind == ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind == ValueKind.NUMBER:
        number = float(value)
        if number.is_integer():
            return str(int(number))
        return repr(number)
    if kind == ValueKind.TIMESTAMP:
        return value.isoformat()
    return str(value)


def as_boolean(value: Any) -> Optional[bool]:
    kind = kind_of(value)
    if kind == ValueKind.BOOLEAN:
        return value
    if kind == ValueKind.STRING and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def values_equal(left: Any, right: Any) -> bool:
    """
    Deep, symmetric equality after coercion.

    Order of preference: null, maps, lists, numbers (numeric strings included),
    booleans (including "true"/"false" strings), timestamps, then text.
    """
    left_kind, right_kind = kind_of(left), kind_of(right)

    if left_kind == ValueKind.NULL or right_kind == ValueKind.NULL:
        return left_kind == right_kind

    if left_kind == ValueKind.MAP or right_kind == ValueKind.MAP:
        if left_kind != right_kind or set(left) != set(right):
            return False
        return all(values_equal(left[k], right[k]) for k in left)

    if left_kind == ValueKind.LIST or right_kind == ValueKind.LIST:
        if left_kind != right_kind or len(left) != len(right):
            return False
        return all(values_equal(a, b) for a, b in zip(left, right))

    left_num, right_num = as_number(left), as_number(right)
    if left_num is not None and right_num is not None:
        return left_num == right_num

    if ValueKind.BOOLEAN in (left_kind, right_kind):
        left_bool, right_bool = as_boolean(left), as_boolean(right)
        if left_bool is not None and right_bool is not None:
            return left_bool == right_bool
        return False

    if ValueKind.TIMESTAMP in (left_kind, right_kind):
        left_ts, right_ts = as_timestamp(left), as_timestamp(right)
        if left_ts is not None and right_ts is not None:
            return left_ts == right_ts
        return False

    return as_text(left) == as_text(right)


def compare_ordered(left: Any, right: Any) -> Optional[int]:
    """
    -1, 0 or 1 when both sides are numeric or both are timestamps after
    coercion; None when they are not comparable.
    """
    left_num, right_num = as_number(left), as_number(right)
    if left_num is not None and right_num is not None:
        return (left_num > right_num) - (left_num < right_num)

    left_ts, right_ts = as_timestamp(left), as_timestamp(right)
    if left_ts is not None and right_ts is not None:
        return (left_ts > right_ts) - (left_ts < right_ts)

    return None
