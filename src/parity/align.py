"""
Row alignment for positional comparison.

Backends return rows in arbitrary order. Both sequences are sorted by the
row key before they are compared index by index; sequences of different
length are never field-compared.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import BackendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Row:
    """One fetched record, tagged with its endpoint and backend."""

    endpoint: str
    backend: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Rows are immutable once fetched
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def get(self, column: str, default: Any = None) -> Any:
        return self.data.get(column, default)

    def __contains__(self, column: str) -> bool:
        return column in self.data

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


class AlignmentStatus(str, Enum):
    """Outcome of aligning two row sequences."""

    ALIGNED = "aligned"
    EMPTY = "empty"
    COUNT_MISMATCH = "count_mismatch"


@dataclass(frozen=True)
class Alignment:
    """Two row sequences sorted by row key, safe to compare positionally."""

    status: AlignmentStatus
    rows_a: tuple[Row, ...]
    rows_b: tuple[Row, ...]

    @property
    def count_a(self) -> int:
        return len(self.rows_a)

    @property
    def count_b(self) -> int:
        return len(self.rows_b)

    def pairs(self) -> list[tuple[Row, Row]]:
        """Index-aligned row pairs; empty unless status is ALIGNED."""
        if self.status != AlignmentStatus.ALIGNED:
            return []
        return list(zip(self.rows_a, self.rows_b))


def row_sort_key(row: Row | Mapping[str, Any], key_field: str) -> str:
    """
    Ordinal sort key for a row; missing or null keys sort as "".
    """
    value = row.get(key_field)
    if value is None:
        return ""
    return str(value)


def sort_rows(rows: Sequence[Row], key_field: str) -> tuple[Row, ...]:
    """Sort rows ascending by row key using code point comparison."""
    return tuple(sorted(rows, key=lambda row: row_sort_key(row, key_field)))


def align_rows(
    rows_a: Sequence[Row],
    rows_b: Sequence[Row],
    key_field: str = "sourcedId",
) -> Alignment:
    """
    Sort both sequences by row key and classify the pair

    Args:
        rows_a: Rows from the authoritative backend
        rows_b: Rows from the other backend
        key_field: Row key column used for ordering

    Returns:
        Alignment with status EMPTY when both are empty, COUNT_MISMATCH when
        lengths differ, ALIGNED otherwise
    """
    sorted_a = sort_rows(rows_a, key_field)
    sorted_b = sort_rows(rows_b, key_field)

    if not sorted_a and not sorted_b:
        status = AlignmentStatus.EMPTY
    elif len(sorted_a) != len(sorted_b):
        status = AlignmentStatus.COUNT_MISMATCH
    else:
        status = AlignmentStatus.ALIGNED

    return Alignment(status=status, rows_a=sorted_a, rows_b=sorted_b)


def fetch_pair(
    fetch_a: Callable[[], Any],
    fetch_b: Callable[[], Any],
    timeout: float | None = None,
    backend_a: str = "postgres",
    backend_b: str = "mssql",
) -> tuple[Any, Any]:
    """
    Run two independent backend fetches concurrently and wait for both

    Args:
        fetch_a: Zero-argument callable fetching from backend A
        fetch_b: Zero-argument callable fetching from backend B
        timeout: Seconds to wait for both fetches together (None waits
            indefinitely)
        backend_a: Name of backend A, used in errors
        backend_b: Name of backend B, used in errors

    Returns:
        Tuple of (result_a, result_b)

    Raises:
        BackendError: If either fetch raised or did not finish in time
    """
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="parity-fetch")
    try:
        futures = (
            (backend_a, executor.submit(fetch_a)),
            (backend_b, executor.submit(fetch_b)),
        )
        # One deadline covers both fetches; a failure ends the wait early
        done, pending = wait(
            [future for _, future in futures], timeout=timeout, return_when=FIRST_EXCEPTION
        )
        results = [None, None]
        for index, (backend, future) in enumerate(futures):
            if future not in done:
                continue
            try:
                results[index] = future.result()
            except BackendError:
                raise
            except Exception as e:
                raise BackendError(backend, f"{type(e).__name__}: {e}") from e
        for backend, future in futures:
            if future in pending:
                raise BackendError(backend, f"request timed out after {timeout}s")
        return results[0], results[1]
    finally:
        # Never block on a hung fetch; its result is discarded
        executor.shutdown(wait=False, cancel_futures=True)
