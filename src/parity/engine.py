"""
Parity engine: per-endpoint comparison pipelines and the run loop.

Database mode:
    columns (both backends, concurrently) -> schema reconciliation
    rows (both backends, concurrently)    -> alignment by row key
    aligned pairs                         -> field diffing -> EndpointResult

API mode:
    envelopes (both deployments, concurrently) -> redaction + diffing
    -> EndpointResult

Endpoints are processed sequentially. Every failure inside one endpoint
is converted into that endpoint's result; the run always continues with
the next endpoint.
"""

import json
import logging
import time
from collections.abc import Iterable
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any

from src.utils.logging import ContextLogger
from src.utils.metrics import ParityMetrics
from src.utils.tracing import add_span_attributes, add_span_event, trace_operation

from .align import AlignmentStatus, align_rows, fetch_pair
from .backends.base import EnvelopeSource, RowSource
from .config import ParityConfig
from .diff import DiffPolicy, Difference, RecordDifference, count_by_kind, diff_rows
from .endpoints import EndpointSpec
from .envelope import EnvelopeStatus, compare_envelopes
from .errors import ColumnDetectionFailed, CountMismatch
from .report import EndpointResult, EndpointStatus, RunReport
from .report.aggregator import MAX_SAMPLE_RECORDS
from .schema import ColumnDifference, reconcile_columns

logger = logging.getLogger(__name__)

_ENVELOPE_STATUS = {
    EnvelopeStatus.IDENTICAL: EndpointStatus.SUCCESS,
    EnvelopeStatus.DIFFERENT: EndpointStatus.DIFFERENT,
    EnvelopeStatus.STRUCTURE_MISMATCH: EndpointStatus.STRUCTURE_MISMATCH,
}


class ParityEngine:
    """
    Compares endpoints between backend A (PostgreSQL, authoritative) and
    backend B (SQL Server).

    Args:
        config: Run configuration
        metrics: Optional Prometheus metrics recorder
    """

    def __init__(self, config: ParityConfig, metrics: ParityMetrics | None = None):
        self.config = config
        self.metrics = metrics
        self.log = ContextLogger(__name__, dataset_version=config.dataset_version)

    # Database mode

    def compare_database_endpoint(
        self,
        source_a: RowSource,
        source_b: RowSource,
        spec: EndpointSpec,
    ) -> EndpointResult:
        """
        Compare one endpoint's table across both databases

        Args:
            source_a: Row source of backend A
            source_b: Row source of backend B
            spec: Endpoint to compare

        Returns:
            EndpointResult; never raises
        """
        log = self.log.bind(endpoint=spec.name, mode="database")
        started = time.monotonic()
        columns: ColumnDifference | None = None

        with trace_operation("compare_endpoint", endpoint=spec.name, mode="database"):
            try:
                log.info(f"Determining column structure for {spec.name}")
                columns_a, columns_b = fetch_pair(
                    lambda: source_a.list_columns(spec),
                    lambda: source_b.list_columns(spec),
                    timeout=self.config.request_timeout,
                    backend_a=source_a.name,
                    backend_b=source_b.name,
                )
                columns = reconcile_columns(
                    columns_a, columns_b, spec.name, source_a.name, source_b.name
                )
                log.info(
                    f"Columns: {source_a.name}={len(columns_a)}, {source_b.name}={len(columns_b)}"
                )
                if columns.has_differences:
                    log.info(
                        f"Column differences for {spec.name}: "
                        f"only in {source_a.name}={list(columns.missing_in_b)}, "
                        f"only in {source_b.name}={list(columns.extra_in_b)}"
                    )

                rows_a, rows_b = fetch_pair(
                    lambda: source_a.fetch_all_rows(spec),
                    lambda: source_b.fetch_all_rows(spec),
                    timeout=self.config.request_timeout,
                    backend_a=source_a.name,
                    backend_b=source_b.name,
                )
                add_span_event("rows_fetched", count_a=len(rows_a), count_b=len(rows_b))

                alignment = align_rows(rows_a, rows_b, spec.key_field)

                if alignment.status == AlignmentStatus.EMPTY:
                    log.warning(f"Both backends returned 0 rows for {spec.name}")
                    result = EndpointResult(
                        endpoint=spec.name,
                        status=EndpointStatus.EMPTY,
                        identical=not columns.has_differences,
                        column_difference=columns,
                    )
                elif alignment.status == AlignmentStatus.COUNT_MISMATCH:
                    raise CountMismatch(spec.name, alignment.count_a, alignment.count_b)
                else:
                    policy = DiffPolicy(
                        key_field=spec.key_field,
                        columns_b=frozenset(columns_b),
                    )
                    result = self._diff_aligned(spec, alignment.pairs(), policy, columns)

            except ColumnDetectionFailed as e:
                log.error(str(e))
                result = EndpointResult.failure(
                    spec.name, EndpointStatus.COLUMN_DETECTION_FAILED, str(e)
                )
            except CountMismatch as e:
                log.error(str(e))
                result = EndpointResult.failure(
                    spec.name,
                    EndpointStatus.COUNT_MISMATCH,
                    str(e),
                    count_a=e.count_a,
                    count_b=e.count_b,
                    column_difference=columns,
                )
            except Exception as e:
                log.exception(f"Error comparing {spec.name}: {e}")
                result = EndpointResult.failure(
                    spec.name,
                    EndpointStatus.ERROR,
                    str(e),
                    column_difference=columns,
                )

            add_span_attributes(status=result.status.value, identical=result.identical)

        return self._finish(result, started, log)

    def _diff_aligned(
        self,
        spec: EndpointSpec,
        pairs: list,
        policy: DiffPolicy,
        columns: ColumnDifference,
    ) -> EndpointResult:
        differences: list[Difference] = []
        samples: list[RecordDifference] = []
        differing_rows = 0

        for index, (row_a, row_b) in enumerate(pairs):
            row_differences = diff_rows(row_a, row_b, policy)
            if not row_differences:
                continue

            differing_rows += 1
            differences.extend(
                replace(d, path=f"[{index}].{d.path}") for d in row_differences
            )
            if len(samples) < MAX_SAMPLE_RECORDS:
                samples.append(
                    RecordDifference.from_records(
                        index, row_differences, row_a.data, row_b.data, spec.key_field
                    )
                )

        return EndpointResult(
            endpoint=spec.name,
            status=EndpointStatus.DIFFERENT if differing_rows else EndpointStatus.SUCCESS,
            identical=differing_rows == 0,
            rows_compared=len(pairs),
            count_a=len(pairs),
            count_b=len(pairs),
            differing_rows=differing_rows,
            difference_counts=count_by_kind(differences),
            differences=tuple(differences),
            samples=tuple(samples),
            column_difference=columns,
        )

    def run_database(
        self,
        source_a: RowSource,
        source_b: RowSource,
        endpoints: Iterable[EndpointSpec],
    ) -> RunReport:
        """
        Compare every endpoint sequentially

        Args:
            source_a: Open row source of backend A
            source_b: Open row source of backend B
            endpoints: Endpoints to compare, in order

        Returns:
            RunReport with one result per endpoint
        """
        report = RunReport(dataset_version=self.config.dataset_version, mode="database")
        self.describe_backends(report, source_a, source_b)

        for spec in endpoints:
            report.add(self.compare_database_endpoint(source_a, source_b, spec))

        return report

    # API mode

    def compare_api_endpoint(
        self,
        source_a: EnvelopeSource,
        source_b: EnvelopeSource,
        spec: EndpointSpec,
        save_dir: Path | None = None,
    ) -> EndpointResult:
        """
        Compare one endpoint's response envelopes across both deployments

        Args:
            source_a: Envelope source of backend A
            source_b: Envelope source of backend B
            spec: Endpoint to compare
            save_dir: Directory receiving the raw envelopes (None to skip)

        Returns:
            EndpointResult; never raises
        """
        log = self.log.bind(endpoint=spec.name, mode="api")
        started = time.monotonic()

        with trace_operation("compare_endpoint", endpoint=spec.name, mode="api"):
            try:
                log.info(f"Fetching {spec.label} from both deployments")
                envelope_a, envelope_b = fetch_pair(
                    lambda: source_a.fetch_envelope(spec),
                    lambda: source_b.fetch_envelope(spec),
                    timeout=self.config.request_timeout,
                    backend_a=source_a.name,
                    backend_b=source_b.name,
                )

                if save_dir is not None:
                    self.save_envelopes(save_dir, spec, source_a.name, envelope_a)
                    self.save_envelopes(save_dir, spec, source_b.name, envelope_b)

                comparison = compare_envelopes(envelope_a, envelope_b, spec)
                status = _ENVELOPE_STATUS[comparison.status]
                same_length = comparison.count_a == comparison.count_b

                result = EndpointResult(
                    endpoint=spec.name,
                    status=status,
                    identical=comparison.identical,
                    mode="api",
                    rows_compared=comparison.count_a if same_length else 0,
                    count_a=comparison.count_a,
                    count_b=comparison.count_b,
                    differing_rows=comparison.differing_items,
                    difference_counts=count_by_kind(comparison.differences),
                    differences=comparison.differences,
                    samples=comparison.item_differences,
                    error=comparison.message,
                )
            except Exception as e:
                log.exception(f"Error comparing {spec.name}: {e}")
                result = EndpointResult.failure(
                    spec.name, EndpointStatus.ERROR, str(e), mode="api"
                )

            add_span_attributes(status=result.status.value, identical=result.identical)

        return self._finish(result, started, log)

    def save_envelopes(
        self,
        save_dir: Path,
        spec: EndpointSpec,
        backend: str,
        envelope: dict[str, Any],
    ) -> Path:
        """Write one raw envelope as <dataset>-<backend>-<endpoint>.json."""
        save_dir = Path(save_dir)
        save_dir.mkdir(parents=True, exist_ok=True)
        path = save_dir / f"{self.config.dataset_version}-{backend}-{spec.name}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(envelope, f, indent=2)
        logger.debug(f"Saved {backend} envelope for {spec.name} to {path}")
        return path

    def run_api(
        self,
        source_a: EnvelopeSource,
        source_b: EnvelopeSource,
        endpoints: Iterable[EndpointSpec],
        save_dir: Path | None = None,
    ) -> RunReport:
        """Compare every API endpoint sequentially."""
        report = RunReport(dataset_version=self.config.dataset_version, mode="api")

        for spec in endpoints:
            report.add(self.compare_api_endpoint(source_a, source_b, spec, save_dir))

        return report

    # Shared

    def describe_backends(self, report: RunReport, *sources: RowSource) -> None:
        """
        Record server identity of each backend and warn on data standard drift

        A data standard that does not match the configured dataset version,
        or that differs between backends, is a warning only.
        """
        expected = self.config.dataset_version.removeprefix("ds")
        detected = {}

        for source in sources:
            try:
                info = source.describe()
            except Exception as e:
                logger.warning(f"Could not describe {source.name} backend: {e}")
                continue

            report.backends[source.name] = asdict(info)
            logger.info(
                f"{source.name}: version={info.server_version}, database={info.database}, "
                f"user={info.user}, {info.data_standard}"
            )

            major = info.major_standard()
            if major is None:
                continue
            detected[source.name] = info.data_standard
            if major != expected:
                message = (
                    f"{source.name} database contains {info.data_standard} but the run "
                    f"is configured for DS{expected}"
                )
                logger.warning(message)
                report.add_warning(message)

        if len(set(detected.values())) > 1:
            message = "Data standard mismatch between backends: " + ", ".join(
                f"{name}={standard}" for name, standard in detected.items()
            )
            logger.warning(message)
            report.add_warning(message)

    def _finish(
        self,
        result: EndpointResult,
        started: float,
        log: ContextLogger,
    ) -> EndpointResult:
        result = replace(result, duration=time.monotonic() - started)

        if result.identical:
            log.info(
                f"{result.endpoint}: all {result.rows_compared} rows are identical",
                status=result.status.value,
            )
        else:
            log.warning(
                f"{result.endpoint}: {result.status.value} "
                f"({result.differing_rows} differing of {result.rows_compared})",
                status=result.status.value,
            )
            if result.boolean_format_count:
                log.warning(
                    f"{result.endpoint}: {result.boolean_format_count} boolean format "
                    'differences (OneRoster requires the strings "true"/"false")'
                )

        if self.metrics is not None:
            self.metrics.record_endpoint(
                result.endpoint,
                status=result.status.value,
                duration=result.duration,
                rows_compared=result.rows_compared,
                mode=result.mode,
            )
            self.metrics.record_differences(result.endpoint, result.difference_counts)

        return result


__all__ = ["ParityEngine"]
