"""
Value normalization for cross-backend comparison.

Both backends expose the same logical values with different encodings:
PostgreSQL returns structured columns as native dicts/lists, SQL Server
returns them as JSON text. normalize() maps a raw field value of either
origin onto one tagged representation so that equivalent data converges
to the same shape.

String booleans ("true"/"false") are deliberately left as strings here;
the differ reports boolean encoding deviations explicitly.
"""

import json
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from prometheus_client import Counter

from src.utils.metrics import get_or_create_metric

logger = logging.getLogger(__name__)


NORMALIZATION_DEGRADED = get_or_create_metric(
    lambda: Counter(
        "parity_normalization_degraded_total",
        "Values that looked JSON-encoded but failed to parse",
        ["reason"],
    ),
    "parity_normalization_degraded_total",
)


class ValueKind(str, Enum):
    """Tags of the normalized value variant."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class NormalizedValue:
    """
    Canonical comparable form of one raw field value.

    ``value`` holds None for NULL, a bool/int/float/Decimal/str for scalars,
    a tuple of NormalizedValue for ARRAY and a read-only mapping of
    str -> NormalizedValue for OBJECT.
    """

    kind: ValueKind
    value: Any = None

    @property
    def is_container(self) -> bool:
        return self.kind in (ValueKind.ARRAY, ValueKind.OBJECT)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NormalizedValue):
            return NotImplemented
        if self.kind != other.kind:
            return False
        if self.kind == ValueKind.OBJECT:
            return dict(self.value) == dict(other.value)
        if self.kind == ValueKind.NUMBER and is_nan(self.value) and is_nan(other.value):
            return True
        return self.value == other.value

    def __hash__(self) -> int:
        if self.kind == ValueKind.OBJECT:
            return hash((self.kind, frozenset(self.value.items())))
        if self.kind == ValueKind.NUMBER and is_nan(self.value):
            return hash((self.kind, "nan"))
        return hash((self.kind, self.value))


NULL = NormalizedValue(ValueKind.NULL)


def is_nan(value: Any) -> bool:
    """True for float and Decimal NaN; NaN numbers compare equal to each other."""
    if isinstance(value, Decimal):
        return value.is_nan()
    return isinstance(value, float) and math.isnan(value)


def looks_like_json(text: str) -> bool:
    """
    Check whether a string should be treated as JSON-encoded.

    A string qualifies when, after trimming whitespace, it is non-empty and
    is wrapped in ``{...}`` or ``[...]``.
    """
    stripped = text.strip()
    if not stripped:
        return False
    return (stripped[0] == "{" and stripped[-1] == "}") or (
        stripped[0] == "[" and stripped[-1] == "]"
    )


def normalize(raw: Any) -> NormalizedValue:
    """
    Normalize one raw field value into a NormalizedValue

    Args:
        raw: Value as returned by either backend driver, a parsed JSON
            document, or an already normalized value

    Returns:
        NormalizedValue; never raises for parse failures (the string is kept
        and a warning is logged)
    """
    if isinstance(raw, NormalizedValue):
        return raw

    if raw is None:
        return NULL

    # bool is a subclass of int, check it first
    if isinstance(raw, bool):
        return NormalizedValue(ValueKind.BOOLEAN, raw)

    if isinstance(raw, (int, float, Decimal)):
        return NormalizedValue(ValueKind.NUMBER, raw)

    if isinstance(raw, str):
        if looks_like_json(raw):
            try:
                parsed = json.loads(raw)
            except (ValueError, RecursionError) as e:
                NORMALIZATION_DEGRADED.labels(reason=type(e).__name__).inc()
                logger.warning(
                    f"Value looks JSON-encoded but failed to parse, "
                    f"comparing as plain string: {e}"
                )
                return NormalizedValue(ValueKind.STRING, raw)
            return normalize(parsed)
        return NormalizedValue(ValueKind.STRING, raw)

    if isinstance(raw, dict):
        return NormalizedValue(
            ValueKind.OBJECT,
            MappingProxyType({str(k): normalize(v) for k, v in raw.items()}),
        )

    if isinstance(raw, (list, tuple)):
        return NormalizedValue(ValueKind.ARRAY, tuple(normalize(v) for v in raw))

    if isinstance(raw, (datetime, date, time)):
        return NormalizedValue(ValueKind.STRING, raw.isoformat())

    if isinstance(raw, (bytes, bytearray, memoryview)):
        return NormalizedValue(ValueKind.STRING, bytes(raw).hex())

    # UUID and any other driver type compare by their text form
    return NormalizedValue(ValueKind.STRING, str(raw))


def to_plain(value: NormalizedValue | None) -> Any:
    """
    Convert a NormalizedValue back into plain JSON-compatible Python values.

    Decimals are rendered as int or float so that the result can be passed
    to json.dumps without a custom encoder.
    """
    if value is None:
        return None
    if value.kind == ValueKind.ARRAY:
        return [to_plain(v) for v in value.value]
    if value.kind == ValueKind.OBJECT:
        return {k: to_plain(v) for k, v in value.value.items()}
    if isinstance(value.value, Decimal):
        as_int = int(value.value)
        return as_int if as_int == value.value else float(value.value)
    return value.value


def type_name(value: NormalizedValue | None) -> str:
    """Short type label used in type-mismatch differences."""
    if value is None:
        return "undefined"
    return value.kind.value


def _expand(raw: Any) -> Any:
    if isinstance(raw, str) and looks_like_json(raw):
        try:
            return json.loads(raw)
        except (ValueError, RecursionError):
            return raw
    return raw


def equivalent(raw_a: Any, raw_b: Any) -> bool:
    """
    Deep equality of two raw values under normalization, without recursion

    Gives the same answer as ``normalize(raw_a) == normalize(raw_b)`` for
    values nested too deeply for normalize() to walk.
    """
    pending = [(raw_a, raw_b)]
    while pending:
        a, b = (_expand(raw) for raw in pending.pop())
        a_object, b_object = isinstance(a, dict), isinstance(b, dict)
        a_array, b_array = isinstance(a, (list, tuple)), isinstance(b, (list, tuple))

        if a_object and b_object:
            fields_b = {str(k): v for k, v in b.items()}
            fields_a = {str(k): v for k, v in a.items()}
            if fields_a.keys() != fields_b.keys():
                return False
            pending.extend((v, fields_b[k]) for k, v in fields_a.items())
        elif a_array and b_array:
            if len(a) != len(b):
                return False
            pending.extend(zip(a, b))
        elif a_object or b_object or a_array or b_array:
            return False
        elif normalize(a) != normalize(b):
            return False
    return True
