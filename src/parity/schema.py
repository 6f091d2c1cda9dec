"""
Column-set reconciliation between two backends.

The result is advisory: column differences are reported but never make an
endpoint fail on their own, and row comparison always proceeds over the
columns the authoritative backend shares with the other one.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .errors import ColumnDetectionFailed


@dataclass(frozen=True)
class ColumnDifference:
    """Columns present on only one side for one endpoint."""

    missing_in_b: tuple[str, ...] = ()
    extra_in_b: tuple[str, ...] = ()

    @property
    def has_differences(self) -> bool:
        return bool(self.missing_in_b or self.extra_in_b)

    def to_dict(self) -> dict[str, Any]:
        return {
            "missing_in_b": list(self.missing_in_b),
            "extra_in_b": list(self.extra_in_b),
        }


def reconcile_columns(
    columns_a: Sequence[str],
    columns_b: Sequence[str],
    endpoint: str = "",
    backend_a: str = "postgres",
    backend_b: str = "mssql",
) -> ColumnDifference:
    """
    Compute the column-set symmetric difference for one endpoint

    Args:
        columns_a: Column names of the authoritative backend, in source order
        columns_b: Column names of the other backend, in source order
        endpoint: Endpoint name, used in the error
        backend_a: Name of backend A, used in the error
        backend_b: Name of backend B, used in the error

    Returns:
        ColumnDifference with A - B and B - A, each in its side's source order

    Raises:
        ColumnDetectionFailed: If either side has no columns
    """
    if not columns_a:
        raise ColumnDetectionFailed(endpoint, backend_a)
    if not columns_b:
        raise ColumnDetectionFailed(endpoint, backend_b)

    set_a = set(columns_a)
    set_b = set(columns_b)

    return ColumnDifference(
        missing_in_b=tuple(col for col in columns_a if col not in set_b),
        extra_in_b=tuple(col for col in columns_b if col not in set_a),
    )


def comparable_columns(columns_a: Sequence[str], columns_b: Sequence[str]) -> list[str]:
    """Columns of the authoritative side that also exist on the other side."""
    set_b = set(columns_b)
    return [col for col in columns_a if col in set_b]
