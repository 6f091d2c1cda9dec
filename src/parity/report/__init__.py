"""
Parity report aggregation and formatting.

RunReport collects one EndpointResult per compared endpoint; the
formatters render its dictionary form for the console or export it as
JSON.
"""

from .aggregator import EndpointResult, EndpointStatus, RunReport, merge_counts
from .formatters import (
    export_report_json,
    format_difference,
    format_grouped_differences,
    format_report_console,
    load_report_json,
)

__all__ = [
    "EndpointResult",
    "EndpointStatus",
    "RunReport",
    "merge_counts",
    "export_report_json",
    "load_report_json",
    "format_report_console",
    "format_grouped_differences",
    "format_difference",
]
