"""
Retry with exponential backoff for backend connection setup

Connections to both backends are opened once per run; transient failures
while opening them (server still starting, network blip) are retried with:
- Exponential backoff (base 2.0) capped at max_delay
- +/-25% jitter
- Filtering on transient error patterns, other errors fail immediately

Comparison queries are never retried: a failed fetch becomes that
endpoint's error outcome.

Usage:
    from src.utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3, base_delay=1.0)
    def connect():
        return psycopg2.connect(**params)
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# Substrings of transient connection errors across psycopg2 and pyodbc
RETRYABLE_PATTERNS = (
    "connection",
    "timeout",
    "timed out",
    "deadlock",
    "server has gone away",
    "could not connect",
    "can't connect",
    "unable to connect",
    "connection refused",
    "connection reset",
    "broken pipe",
    "network error",
    "communication link failure",
    "the database system is starting up",
    "login timeout expired",
)

RETRYABLE_EXCEPTION_NAMES = (
    "connectionerror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
)


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is transient

    Args:
        exception: The exception to check

    Returns:
        True if the exception is retryable, False otherwise
    """
    message = str(exception).lower()
    exception_type = type(exception).__name__.lower()

    if exception_type in RETRYABLE_EXCEPTION_NAMES:
        return True

    return any(
        pattern in message or pattern in exception_type
        for pattern in RETRYABLE_PATTERNS
    )


def backoff_delay(attempt: int, base_delay: float, max_delay: float = 60.0) -> float:
    """Delay before retry number ``attempt`` (0-based), with jitter."""
    delay = min(base_delay * (2.0 ** attempt), max_delay)
    jitter_amount = delay * 0.25
    return max(0.1, delay + random.uniform(-jitter_amount, jitter_amount))


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
):
    """
    Decorator retrying transient database errors with exponential backoff

    Non-retryable errors (authentication failure, unknown database) are
    raised on the first attempt.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        on_retry: Callback function(attempt, exception, delay) called on each retry

    Example:
        @retry_database_operation(max_retries=5)
        def open_connection(params):
            return psycopg2.connect(**params)
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            func_name = getattr(func, "__name__", "function")

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable_db_exception(e):
                        logger.error(
                            f"Non-retryable database error in {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay)
                    logger.warning(
                        f"Retryable database error in {func_name} "
                        f"(attempt {attempt + 1}/{max_retries}): "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                    )

                    if on_retry:
                        try:
                            on_retry(attempt + 1, e, delay)
                        except Exception as callback_error:
                            logger.error(f"Error in retry callback: {callback_error}")

                    time.sleep(delay)

            raise RuntimeError(f"Unexpected error in retry logic for {func_name}")

        return wrapper
    return decorator
