"""
Command-line interface for parity verification.

This module provides the parity-check CLI comparing a PostgreSQL
deployment (authoritative) against a SQL Server deployment.

Available commands:
- database: Compare oneroster12 tables directly
- api: Compare REST response envelopes
- report: Render a report from a previous run
"""

import sys

from src.utils.logging import shutdown_logging

from .commands import cmd_api, cmd_database, cmd_report
from .credentials import build_config, setup_logging
from .parser import create_parser

COMMANDS = {
    'database': cmd_database,
    'api': cmd_api,
    'report': cmd_report,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the parity-check CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return 1

    setup_logging(args)
    try:
        return COMMANDS[args.command](args)
    finally:
        shutdown_logging()


__all__ = [
    'main',
    'setup_logging',
    'build_config',
    'cmd_database',
    'cmd_api',
    'cmd_report',
    'create_parser',
]


if __name__ == '__main__':
    sys.exit(main())
