"""
Cross-backend OneRoster parity verification.

Compares a PostgreSQL deployment (authoritative) against a SQL Server
deployment, either table by table or through their REST endpoints, and
reports every semantic difference after representation-level
normalization.
"""

from .align import Row, align_rows
from .diff import DiffPolicy, Difference, DifferenceKind, RecordDifference, diff_values
from .endpoints import EndpointSpec, select_endpoints
from .engine import ParityEngine
from .envelope import compare_envelopes
from .errors import (
    BackendError,
    ColumnDetectionFailed,
    CountMismatch,
    InvalidArgument,
    ParityError,
)
from .normalize import NormalizedValue, ValueKind, normalize
from .report import EndpointResult, EndpointStatus, RunReport
from .schema import ColumnDifference, reconcile_columns

__version__ = "1.0.0"

__all__ = [
    "Row",
    "align_rows",
    "Difference",
    "DifferenceKind",
    "DiffPolicy",
    "RecordDifference",
    "diff_values",
    "EndpointSpec",
    "select_endpoints",
    "ParityEngine",
    "compare_envelopes",
    "ParityError",
    "ColumnDetectionFailed",
    "CountMismatch",
    "BackendError",
    "InvalidArgument",
    "NormalizedValue",
    "ValueKind",
    "normalize",
    "EndpointResult",
    "EndpointStatus",
    "RunReport",
    "ColumnDifference",
    "reconcile_columns",
]
