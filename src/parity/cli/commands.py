"""
CLI command implementations.

This module contains the implementation of the three CLI commands:
- database: compare oneroster12 tables of both databases
- api: compare REST responses of both service deployments
- report: re-render a saved JSON report

Each command returns the process exit code.
"""

import argparse
import logging
import sys

from src.utils.metrics import ParityMetrics, initialize_metrics
from src.utils.tracing import initialize_tracing, shutdown_tracing

from ..backends import PostgresRowSource, RestEnvelopeSource, SqlServerRowSource
from ..endpoints import parse_selector, registry_for, select_endpoints
from ..engine import ParityEngine
from ..errors import InvalidArgument
from ..report import (
    RunReport,
    export_report_json,
    format_report_console,
    load_report_json,
)
from .credentials import access_token, build_config

logger = logging.getLogger(__name__)


def _usage_error(mode: str, error: Exception) -> int:
    """Log an argument error and print usage with the valid endpoints."""
    logger.error(str(error))
    print(
        f"Usage: parity-check {mode} [ds4|ds5] [endpoint]\n"
        f"Valid endpoints: {', '.join(registry_for(mode))}",
        file=sys.stderr,
    )
    return 1


def _resolve(mode: str, args: argparse.Namespace):
    version, endpoint_filter = parse_selector(args.selector)
    return version, select_endpoints(mode, endpoint_filter)


def _start_metrics(port: int | None) -> ParityMetrics | None:
    if not port:
        return None
    return initialize_metrics(port=port)["parity"]


def _emit(report: RunReport, args: argparse.Namespace) -> int:
    """Print the console report, optionally save the JSON report, return exit code."""
    print(report.format_console(max_per_category=args.max_differences))

    if args.output:
        export_report_json(report.to_dict(), args.output)
        logger.info(f"Report saved to {args.output}")

    if report.exit_code:
        logger.warning(
            f"Parity check found differences in {report.different_count} "
            f"of {report.total} endpoints"
        )
    else:
        logger.info("Parity check completed successfully")
    return report.exit_code


def cmd_database(args: argparse.Namespace) -> int:
    """
    Compare the oneroster12 tables of both databases

    Args:
        args: Parsed command-line arguments

    Returns:
        0 if every compared endpoint is identical, 1 otherwise
    """
    try:
        version, endpoints = _resolve("database", args)
        config = build_config(args, version)
    except InvalidArgument as e:
        return _usage_error("database", e)
    except Exception as e:
        logger.error(f"Failed to build configuration: {e}")
        return 1

    logger.info(
        f"Comparing {len(endpoints)} endpoint(s) of {version.upper()}: "
        f"{', '.join(spec.name for spec in endpoints)}"
    )

    metrics = _start_metrics(args.metrics_port)
    initialize_tracing()

    source_a = source_b = None
    try:
        source_a = PostgresRowSource.connect(
            config.postgres, config.schema, statement_timeout=config.request_timeout
        )
        source_b = SqlServerRowSource.connect(
            config.mssql, config.schema, query_timeout=config.request_timeout
        )
        report = ParityEngine(config, metrics).run_database(source_a, source_b, endpoints)
    except Exception as e:
        logger.error(f"Parity check failed: {e}")
        return 1
    finally:
        for source in (source_a, source_b):
            if source is not None:
                source.close()
        shutdown_tracing()

    return _emit(report, args)


def cmd_api(args: argparse.Namespace) -> int:
    """
    Compare the REST responses of both service deployments

    Args:
        args: Parsed command-line arguments

    Returns:
        0 if every compared endpoint is identical, 1 otherwise
    """
    try:
        version, endpoints = _resolve("api", args)
        config = build_config(args, version)
    except InvalidArgument as e:
        return _usage_error("api", e)
    except Exception as e:
        logger.error(f"Failed to build configuration: {e}")
        return 1

    logger.info(
        f"Comparing {len(endpoints)} API endpoint(s) of {version.upper()}: "
        f"{config.postgres_api_base} vs {config.mssql_api_base}"
    )

    metrics = _start_metrics(args.metrics_port)
    initialize_tracing()
    token = access_token(args)
    save_dir = None if args.no_save else config.data_dir

    source_a = source_b = None
    try:
        source_a = RestEnvelopeSource(
            "postgres", config.postgres_api_base, config.request_timeout, token
        )
        source_b = RestEnvelopeSource(
            "mssql", config.mssql_api_base, config.request_timeout, token
        )
        report = ParityEngine(config, metrics).run_api(
            source_a, source_b, endpoints, save_dir=save_dir
        )
    except Exception as e:
        logger.error(f"Parity check failed: {e}")
        return 1
    finally:
        for source in (source_a, source_b):
            if source is not None:
                source.close()
        shutdown_tracing()

    return _emit(report, args)


def cmd_report(args: argparse.Namespace) -> int:
    """
    Render a report from a previous run's JSON file

    Args:
        args: Parsed command-line arguments

    Returns:
        0 if the report was rendered, 1 if it could not be loaded
    """
    logger.info(f"Loading parity report from {args.input}")

    try:
        report = load_report_json(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load report: {e}")
        return 1

    print(format_report_console(report, max_per_category=args.max_differences))
    return 0
