"""
Run-level aggregation of endpoint outcomes.

Each compared endpoint produces exactly one immutable EndpointResult;
RunReport collects them in completion order and derives the totals,
per-kind difference counts, recommendations and the process exit status.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..diff import Difference, DifferenceKind, RecordDifference
from ..schema import ColumnDifference
from .formatters import format_report_console

MAX_SAMPLE_RECORDS = 3


class EndpointStatus(str, Enum):
    """Outcome classification of one endpoint comparison."""

    SUCCESS = "success"
    DIFFERENT = "different"
    EMPTY = "empty"
    COUNT_MISMATCH = "count_mismatch"
    COLUMN_DETECTION_FAILED = "column_detection_failed"
    STRUCTURE_MISMATCH = "structure_mismatch"
    ERROR = "error"


@dataclass(frozen=True)
class EndpointResult:
    """
    Outcome of comparing one endpoint across both backends.

    Attributes:
        endpoint: Endpoint name
        status: Outcome classification
        identical: Whether the endpoint passes
        mode: "database" or "api"
        rows_compared: Aligned rows (or envelope items) compared
        count_a: Rows/items returned by backend A
        count_b: Rows/items returned by backend B
        differing_rows: Rows/items with at least one difference
        difference_counts: Number of differences per kind
        differences: Path-addressed differences, in discovery order
        samples: First differing records with complete payloads
        column_difference: Column-set differences (database mode)
        error: Failure message for error statuses
        duration: Wall-clock seconds spent on this endpoint
    """

    endpoint: str
    status: EndpointStatus
    identical: bool
    mode: str = "database"
    rows_compared: int = 0
    count_a: int = 0
    count_b: int = 0
    differing_rows: int = 0
    difference_counts: dict[str, int] = field(default_factory=dict)
    differences: tuple[Difference, ...] = ()
    samples: tuple[RecordDifference, ...] = ()
    column_difference: ColumnDifference | None = None
    error: str | None = None
    duration: float = 0.0

    @property
    def boolean_format_count(self) -> int:
        return self.difference_counts.get(DifferenceKind.BOOLEAN_FORMAT.value, 0)

    @property
    def has_column_differences(self) -> bool:
        return self.column_difference is not None and self.column_difference.has_differences

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "mode": self.mode,
            "status": self.status.value,
            "identical": self.identical,
            "rows_compared": self.rows_compared,
            "count_a": self.count_a,
            "count_b": self.count_b,
            "differing_rows": self.differing_rows,
            "difference_counts": dict(self.difference_counts),
            "boolean_format_differences": self.boolean_format_count,
            "differences": [d.to_dict() for d in self.differences],
            "samples": [s.to_dict() for s in self.samples],
            "column_differences": (
                self.column_difference.to_dict() if self.column_difference else None
            ),
            "error": self.error,
            "duration_seconds": round(self.duration, 3),
        }

    @classmethod
    def failure(
        cls,
        endpoint: str,
        status: EndpointStatus,
        message: str,
        mode: str = "database",
        **fields: Any,
    ) -> "EndpointResult":
        """Result for an endpoint that could not be compared."""
        return cls(
            endpoint=endpoint,
            status=status,
            identical=False,
            mode=mode,
            error=message,
            **fields,
        )


def merge_counts(counts: Iterable[dict[str, int]]) -> dict[str, int]:
    """Sum per-kind difference counts."""
    total: dict[str, int] = {}
    for item in counts:
        for kind, count in item.items():
            total[kind] = total.get(kind, 0) + count
    return total


class RunReport:
    """
    Ordered collection of endpoint results for one run.

    Args:
        dataset_version: Dataset version the run was configured for
        mode: "database" or "api"
    """

    def __init__(self, dataset_version: str = "ds5", mode: str = "database"):
        self.dataset_version = dataset_version
        self.mode = mode
        self.started_at = datetime.now(UTC)
        self.backends: dict[str, dict[str, Any]] = {}
        self.warnings: list[str] = []
        self._results: list[EndpointResult] = []

    def add(self, result: EndpointResult) -> None:
        self._results.append(result)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def results(self) -> tuple[EndpointResult, ...]:
        return tuple(self._results)

    @property
    def total(self) -> int:
        return len(self._results)

    @property
    def identical_count(self) -> int:
        return sum(1 for r in self._results if r.identical)

    @property
    def different_count(self) -> int:
        return self.total - self.identical_count

    def difference_counts(self) -> dict[str, int]:
        return merge_counts(r.difference_counts for r in self._results)

    @property
    def boolean_format_count(self) -> int:
        return sum(r.boolean_format_count for r in self._results)

    def endpoints_with_column_differences(self) -> list[EndpointResult]:
        return [r for r in self._results if r.has_column_differences]

    @property
    def status(self) -> str:
        if not self._results:
            return "NO_DATA"
        return "PASS" if self.different_count == 0 else "FAIL"

    @property
    def exit_code(self) -> int:
        """0 if every endpoint is identical, 1 otherwise."""
        return 0 if self.different_count == 0 else 1

    def summary(self) -> str:
        if not self._results:
            return "No endpoints were compared"
        if self.different_count == 0:
            return f"All {self.total} endpoints are identical across both backends."
        return (
            f"Differences found in {self.different_count} of {self.total} endpoints. "
            f"{self.identical_count} endpoints are identical."
        )

    def recommendations(self) -> list[str]:
        recommendations = []

        if self.boolean_format_count:
            recommendations.append(
                f"{self.boolean_format_count} boolean format differences: the "
                'OneRoster contract requires the strings "true"/"false".'
            )

        count_mismatches = [
            r.endpoint for r in self._results if r.status == EndpointStatus.COUNT_MISMATCH
        ]
        if count_mismatches:
            recommendations.append(
                f"Row counts differ for {', '.join(count_mismatches)}. "
                "Check that both backends were refreshed from the same source data."
            )

        undetected = [
            r.endpoint
            for r in self._results
            if r.status == EndpointStatus.COLUMN_DETECTION_FAILED
        ]
        if undetected:
            recommendations.append(
                f"Columns could not be determined for {', '.join(undetected)}. "
                "Verify the views/tables exist and are readable."
            )

        errors = [r.endpoint for r in self._results if r.status == EndpointStatus.ERROR]
        if errors:
            recommendations.append(
                f"Comparison failed for {', '.join(errors)}. See the error details above."
            )

        return recommendations

    def to_dict(self) -> dict[str, Any]:
        """Machine-usable report with the same data as the console rendering."""
        return {
            "status": self.status,
            "dataset_version": self.dataset_version,
            "mode": self.mode,
            "timestamp": self.started_at.isoformat(),
            "total_endpoints": self.total,
            "endpoints_identical": self.identical_count,
            "endpoints_different": self.different_count,
            "difference_counts": self.difference_counts(),
            "boolean_format_differences": self.boolean_format_count,
            "endpoints_with_column_differences": [
                r.endpoint for r in self.endpoints_with_column_differences()
            ],
            "backends": dict(self.backends),
            "warnings": list(self.warnings),
            "summary": self.summary(),
            "recommendations": self.recommendations(),
            "exit_code": self.exit_code,
            "results": [r.to_dict() for r in self._results],
        }

    def format_console(self, max_per_category: int = 10) -> str:
        return format_report_console(self.to_dict(), max_per_category=max_per_category)
