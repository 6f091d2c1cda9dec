"""
Exception taxonomy for parity verification.

Failures raised inside a single endpoint comparison are caught at the
endpoint boundary and converted into an EndpointResult; only argument
validation and connection setup failures abort a whole run.
"""


class ParityError(Exception):
    """Base exception for parity verification errors."""

    pass


class ColumnDetectionFailed(ParityError):
    """Raised when schema introspection returned no columns on one side."""

    def __init__(self, endpoint: str, backend: str):
        self.endpoint = endpoint
        self.backend = backend
        super().__init__(f"Could not determine columns for {endpoint} on {backend}")


class CountMismatch(ParityError):
    """Raised when aligned row counts differ between backends."""

    def __init__(self, endpoint: str, count_a: int, count_b: int):
        self.endpoint = endpoint
        self.count_a = count_a
        self.count_b = count_b
        super().__init__(
            f"Row count mismatch for {endpoint}: {count_a} vs {count_b}"
        )


class BackendError(ParityError):
    """Raised when a backend call failed (connection, timeout, permission)."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        super().__init__(f"{backend}: {message}")


class InvalidArgument(ParityError):
    """Raised for an unknown dataset version or endpoint filter."""

    pass
