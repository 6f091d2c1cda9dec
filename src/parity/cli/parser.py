"""
Command-line argument parser configuration.

This module sets up the argument parser for the parity-check CLI tool,
defining all commands and their options.
"""

import argparse

from ..config import DEFAULT_REQUEST_TIMEOUT
from ..endpoints import DEFAULT_SCHEMA


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    """Options shared by the database and api commands."""
    parser.add_argument(
        'selector',
        nargs='*',
        metavar='[ds4|ds5] [endpoint]',
        help='Dataset version (default: ds5) and optional single endpoint'
    )
    parser.add_argument(
        '--output',
        help='Write the JSON report to this file'
    )
    parser.add_argument(
        '--request-timeout',
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help=f'Per-fetch timeout in seconds (default: {DEFAULT_REQUEST_TIMEOUT:g})'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port during the run'
    )
    parser.add_argument(
        '--max-differences',
        type=int,
        default=10,
        help='Differences shown per kind and endpoint (default: 10)'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='parity-check',
        description="OneRoster parity verification between PostgreSQL and SQL Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compare every oneroster12 table of the ds5 databases
  parity-check database

  # Compare a single table of the ds4 databases
  parity-check database ds4 users

  # Use Vault for credentials and keep the JSON report
  parity-check database --use-vault --output reports/ds5.json

  # Compare the REST responses of both ds5 deployments
  parity-check api ds5 orgs --data-dir tests/data

  # Re-render a previous report
  parity-check report --input reports/ds5.json
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this rotating file'
    )
    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Emit logs as JSON lines'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Database command ==========
    database_parser = subparsers.add_parser(
        'database', help='Compare oneroster12 tables of both databases'
    )
    _add_run_options(database_parser)
    database_parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault'
    )
    database_parser.add_argument(
        '--schema',
        default=DEFAULT_SCHEMA,
        help=f'Schema holding the compared tables (default: {DEFAULT_SCHEMA})'
    )
    database_parser.add_argument(
        '--env-dir',
        default='.',
        help='Directory holding the dataset dotenv files (default: current directory)'
    )
    # PostgreSQL options
    database_parser.add_argument('--postgres-host', help='PostgreSQL host')
    database_parser.add_argument('--postgres-port', type=int, help='PostgreSQL port')
    database_parser.add_argument('--postgres-database', help='PostgreSQL database name')
    # SQL Server options
    database_parser.add_argument('--mssql-server', help='SQL Server host')
    database_parser.add_argument('--mssql-database', help='SQL Server database name')

    # ========== API command ==========
    api_parser = subparsers.add_parser(
        'api', help='Compare REST responses of both service deployments'
    )
    _add_run_options(api_parser)
    api_parser.add_argument(
        '--data-dir',
        default='tests/data',
        help='Directory receiving the raw response envelopes (default: tests/data)'
    )
    api_parser.add_argument(
        '--no-save',
        action='store_true',
        help='Do not write raw response envelopes'
    )
    api_parser.add_argument(
        '--env-dir',
        default='.',
        help='Directory holding the dataset dotenv files (default: current directory)'
    )
    api_parser.add_argument('--postgres-api', help='Base URL of the PostgreSQL-backed service')
    api_parser.add_argument('--mssql-api', help='Base URL of the SQL Server-backed service')
    api_parser.add_argument('--access-token', help='Bearer token sent to both services')

    # ========== Report command ==========
    report_parser = subparsers.add_parser('report', help='Render a previously saved report')
    report_parser.add_argument(
        '--input',
        required=True,
        help='Input JSON report file'
    )
    report_parser.add_argument(
        '--max-differences',
        type=int,
        default=10,
        help='Differences shown per kind and endpoint (default: 10)'
    )

    return parser
