"""
Structured logging configuration for parity verification runs

Provides console or JSON-formatted logging with contextual information
(endpoint, dataset version, backend) attached to every record.

Usage:
    from src.utils.logging import setup_logging, ContextLogger

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/parity/run.log")

    # Bind context once, log many times
    log = ContextLogger(__name__, dataset_version="ds5")
    log.bind(endpoint="users").info("Rows aligned", rows=1200)
"""

from .config import configure_from_env, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
