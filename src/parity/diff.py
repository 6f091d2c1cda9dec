"""
Structural diffing of normalized values and of aligned row pairs.

diff_values() walks two NormalizedValues in lockstep and reports every
structural or scalar deviation with a dotted/bracketed path. diff_rows()
applies the field comparison policy to one aligned row pair: it skips
backend-local columns and detects the encoding deviations (boolean format,
unparseable JSON text) that plain value diffing would hide.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .align import Row
from .normalize import (
    NormalizedValue,
    ValueKind,
    equivalent,
    looks_like_json,
    normalize,
    to_plain,
    type_name,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

# Columns that only exist for ordering or keying on one backend
DERIVED_COLUMNS = frozenset(
    {
        "sort_role_priority",
        "sort_unique_id",
        "naturalKey_localEducationAgencyId",
        "naturalKey_localEducationAgency",
        "naturalKey_courseCode",
    }
)

# Columns whose values legitimately differ per backend
VOLATILE_COLUMNS = frozenset({"dateLastModified"})


class DifferenceKind(str, Enum):
    """Kinds of difference between two values."""

    VALUE = "value"
    TYPE = "type"
    LENGTH = "length"
    MISSING_IN_A = "missing_in_a"
    MISSING_IN_B = "missing_in_b"
    BOOLEAN_FORMAT = "boolean_format"
    JSON_PARSE_ERROR = "json_parse_error"
    ARRAY_PARSE_ERROR = "array_parse_error"


@dataclass(frozen=True)
class Difference:
    """One located deviation; values are plain JSON-compatible data."""

    path: str
    kind: DifferenceKind
    value_a: Any = None
    value_b: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind.value,
            "value_a": self.value_a,
            "value_b": self.value_b,
        }


def _is_null_like(value: NormalizedValue | None) -> bool:
    return value is None or value.kind == ValueKind.NULL


def _values_equal(a: NormalizedValue, b: NormalizedValue) -> bool:
    # Iterative deep equality; containers past the depth bound may be arbitrarily deep
    pending = [(a, b)]
    while pending:
        x, y = pending.pop()
        if x.kind != y.kind:
            return False
        if x.kind == ValueKind.ARRAY:
            if len(x.value) != len(y.value):
                return False
            pending.extend(zip(x.value, y.value))
        elif x.kind == ValueKind.OBJECT:
            if x.value.keys() != y.value.keys():
                return False
            pending.extend((x.value[k], y.value[k]) for k in x.value)
        elif x != y:
            return False
    return True


def diff_values(
    a: NormalizedValue | None,
    b: NormalizedValue | None,
    path: str = "",
    max_depth: int = DEFAULT_MAX_DEPTH,
    _depth: int = 0,
) -> list[Difference]:
    """
    Produce every difference between two normalized values

    Args:
        a: Value from the authoritative side; None means absent
        b: Value from the other side; None means absent
        path: Location of the values; "root" is used when empty
        max_depth: Container nesting bound; unequal containers beyond it
            are reported as a single type difference
        _depth: Current nesting level (internal)

    Returns:
        List of differences in discovery order; empty iff a and b are
        deep-equal
    """
    location = path or "root"

    if _is_null_like(a) or _is_null_like(b):
        # absent and null are distinct here; equal only when the same
        if a is None and b is None:
            return []
        if a is not None and b is not None and a.kind == b.kind == ValueKind.NULL:
            return []
        return [Difference(location, DifferenceKind.VALUE, to_plain(a), to_plain(b))]

    a_array = a.kind == ValueKind.ARRAY
    b_array = b.kind == ValueKind.ARRAY
    if a_array != b_array:
        return [Difference(location, DifferenceKind.TYPE, type_name(a), type_name(b))]

    if a.is_container and b.is_container and _depth >= max_depth:
        if _values_equal(a, b):
            return []
        return [Difference(location, DifferenceKind.TYPE, type_name(a), type_name(b))]

    if a_array:
        differences: list[Difference] = []
        if len(a.value) != len(b.value):
            differences.append(
                Difference(location, DifferenceKind.LENGTH, len(a.value), len(b.value))
            )
        for i, (item_a, item_b) in enumerate(zip(a.value, b.value)):
            differences.extend(
                diff_values(item_a, item_b, f"{path}[{i}]", max_depth, _depth + 1)
            )
        return differences

    if a.kind == ValueKind.OBJECT and b.kind == ValueKind.OBJECT:
        differences = []
        fields_a = a.value
        fields_b = b.value
        for key in fields_a:
            child = f"{path}.{key}" if path else key
            if key not in fields_b:
                differences.append(
                    Difference(
                        child, DifferenceKind.MISSING_IN_B, to_plain(fields_a[key]), None
                    )
                )
            else:
                differences.extend(
                    diff_values(
                        fields_a[key], fields_b[key], child, max_depth, _depth + 1
                    )
                )
        for key in fields_b:
            if key not in fields_a:
                child = f"{path}.{key}" if path else key
                differences.append(
                    Difference(
                        child, DifferenceKind.MISSING_IN_A, None, to_plain(fields_b[key])
                    )
                )
        return differences

    # Scalars, or an object against a scalar
    if a != b:
        return [Difference(location, DifferenceKind.VALUE, to_plain(a), to_plain(b))]
    return []


@dataclass(frozen=True)
class DiffPolicy:
    """
    Field comparison policy for one endpoint.

    Attributes:
        key_field: Row key column, never compared
        columns_b: Column set of the other backend; columns outside it are
            skipped (they are reported by the schema reconciler)
        skip_columns: Additional column names to skip
        max_depth: Nesting bound passed to diff_values
    """

    key_field: str = "sourcedId"
    columns_b: frozenset[str] | None = None
    skip_columns: frozenset[str] = field(
        default_factory=lambda: DERIVED_COLUMNS | VOLATILE_COLUMNS
    )
    max_depth: int = DEFAULT_MAX_DEPTH

    def should_compare(self, column: str) -> bool:
        if column == self.key_field or column in self.skip_columns:
            return False
        # Identifier columns are backend-generated
        if "sourcedid" in column.lower():
            return False
        if self.columns_b is not None and column not in self.columns_b:
            return False
        return True


def _is_boolean_format(value_a: Any, value_b: Any) -> bool:
    def one_way(x: Any, y: Any) -> bool:
        return (x is True and y == "true") or (x is False and y == "false")

    return one_way(value_a, value_b) or one_way(value_b, value_a)


def _array_sort_field(array: list, key_field: str) -> str | None:
    if not array or not isinstance(array[0], Mapping):
        return None
    first = array[0]
    if first.get(key_field):
        return key_field
    if first.get("type"):
        return "type"
    return None


def _sorted_by(array: Iterable[Any], sort_field: str) -> list[Any]:
    def key(item: Any) -> str:
        if isinstance(item, Mapping):
            value = item.get(sort_field)
            return "" if value is None else str(value)
        return ""

    return sorted(array, key=key)


def _raw_type_name(value: Any) -> str:
    # Shallow type label of a raw value, safe for any nesting depth
    if isinstance(value, str) and looks_like_json(value):
        return "array" if value.strip().startswith("[") else "object"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type_name(normalize(value))


def compare_field(
    column: str,
    value_a: Any,
    value_b: Any,
    key_field: str = "sourcedId",
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[Difference]:
    """
    Compare one column of an aligned row pair

    Values nested too deeply to normalize are compared without recursion;
    when they differ, one type difference is reported for the column.

    Args:
        column: Column name, used as the difference path
        value_a: Raw value from the authoritative backend
        value_b: Raw value from the other backend
        key_field: Row key, used to order arrays of entity references
        max_depth: Nesting bound passed to diff_values

    Returns:
        List of differences for this column
    """
    try:
        return _compare_field(column, value_a, value_b, key_field, max_depth)
    except RecursionError:
        logger.warning(f"Column {column} is nested too deeply to diff field by field")
        if equivalent(value_a, value_b):
            return []
        return [
            Difference(
                column, DifferenceKind.TYPE, _raw_type_name(value_a), _raw_type_name(value_b)
            )
        ]


def _compare_field(
    column: str,
    value_a: Any,
    value_b: Any,
    key_field: str,
    max_depth: int,
) -> list[Difference]:
    if value_a is None and value_b is None:
        return []

    if isinstance(value_a, (list, tuple)) and isinstance(value_b, str):
        try:
            parsed_b = json.loads(value_b)
        except (ValueError, RecursionError):
            return [Difference(column, DifferenceKind.ARRAY_PARSE_ERROR, list(value_a), value_b)]
        return _diff_arrays(column, list(value_a), parsed_b, key_field, max_depth)

    if isinstance(value_a, str) and isinstance(value_b, (list, tuple)):
        # Mirror case: the text side is on A
        try:
            parsed_a = json.loads(value_a)
        except (ValueError, RecursionError):
            return [Difference(column, DifferenceKind.ARRAY_PARSE_ERROR, value_a, list(value_b))]
        return _diff_arrays(column, parsed_a, list(value_b), key_field, max_depth)

    if isinstance(value_a, Mapping) and isinstance(value_b, str):
        try:
            parsed_b = json.loads(value_b)
        except (ValueError, RecursionError):
            return [
                Difference(column, DifferenceKind.JSON_PARSE_ERROR, dict(value_a), value_b)
            ]
        return diff_values(normalize(value_a), normalize(parsed_b), column, max_depth)

    if isinstance(value_a, str) and isinstance(value_b, Mapping):
        try:
            parsed_a = json.loads(value_a)
        except (ValueError, RecursionError):
            return [
                Difference(column, DifferenceKind.JSON_PARSE_ERROR, value_a, dict(value_b))
            ]
        return diff_values(normalize(parsed_a), normalize(value_b), column, max_depth)

    if _is_boolean_format(value_a, value_b):
        return [Difference(column, DifferenceKind.BOOLEAN_FORMAT, value_a, value_b)]

    normalized_a = normalize(value_a)
    normalized_b = normalize(value_b)
    if _is_null_like(normalized_a) and _is_null_like(normalized_b):
        return []
    return diff_values(normalized_a, normalized_b, column, max_depth)


def _diff_arrays(
    column: str,
    array_a: Any,
    array_b: Any,
    key_field: str,
    max_depth: int,
) -> list[Difference]:
    # Arrays of entity references are ordered by A's key or type field first
    if isinstance(array_a, list) and isinstance(array_b, list):
        sort_field = _array_sort_field(array_a, key_field)
        if sort_field:
            array_a = _sorted_by(array_a, sort_field)
            array_b = _sorted_by(array_b, sort_field)

    return diff_values(normalize(array_a), normalize(array_b), column, max_depth)


def diff_rows(row_a: Row, row_b: Row, policy: DiffPolicy | None = None) -> list[Difference]:
    """
    Compare every comparable column of an aligned row pair

    Args:
        row_a: Row from the authoritative backend
        row_b: Row from the other backend at the same aligned index
        policy: Field comparison policy (default: sourcedId key, standard
            skip list, B's columns taken from row_b)

    Returns:
        All field differences of the pair, in A's column order
    """
    if policy is None:
        policy = DiffPolicy(columns_b=frozenset(row_b.data))

    differences: list[Difference] = []
    for column, value_a in row_a.data.items():
        if not policy.should_compare(column):
            continue
        differences.extend(
            compare_field(
                column,
                value_a,
                row_b.get(column),
                key_field=policy.key_field,
                max_depth=policy.max_depth,
            )
        )
    return differences


def count_by_kind(differences: Iterable[Difference]) -> dict[str, int]:
    """Tally differences per kind."""
    counts: dict[str, int] = {}
    for difference in differences:
        counts[difference.kind.value] = counts.get(difference.kind.value, 0) + 1
    return counts


def display_key(record: Mapping[str, Any], key_field: str = "sourcedId") -> str:
    """Short row key used to identify a record in console output."""
    value = record.get(key_field)
    if not value:
        return "N/A"
    return str(value)[:8]


def display_title(record: Mapping[str, Any]) -> str:
    """Human-readable label of a record (username, title or name)."""
    for column in ("username", "title", "name"):
        value = record.get(column)
        if value:
            return str(value)
    return "N/A"


@dataclass(frozen=True)
class RecordDifference:
    """
    One differing row (database mode) or collection item (API mode).

    Payloads are the complete records of both sides so that the report can
    show the full before/after context of the first failures.
    """

    index: int
    differences: tuple[Difference, ...]
    key_a: str = "N/A"
    key_b: str = "N/A"
    title_a: str = "N/A"
    title_b: str = "N/A"
    payload_a: Mapping[str, Any] | None = None
    payload_b: Mapping[str, Any] | None = None

    @classmethod
    def from_records(
        cls,
        index: int,
        differences: Iterable[Difference],
        record_a: Mapping[str, Any],
        record_b: Mapping[str, Any],
        key_field: str = "sourcedId",
    ) -> "RecordDifference":
        return cls(
            index=index,
            differences=tuple(differences),
            key_a=display_key(record_a, key_field),
            key_b=display_key(record_b, key_field),
            title_a=display_title(record_a),
            title_b=display_title(record_b),
            payload_a=dict(record_a),
            payload_b=dict(record_b),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "key_a": self.key_a,
            "key_b": self.key_b,
            "title_a": self.title_a,
            "title_b": self.title_b,
            "differences": [d.to_dict() for d in self.differences],
            "payload_a": self.payload_a,
            "payload_b": self.payload_b,
        }


__all__ = [
    "DifferenceKind",
    "Difference",
    "RecordDifference",
    "DiffPolicy",
    "diff_values",
    "diff_rows",
    "compare_field",
    "count_by_kind",
]
