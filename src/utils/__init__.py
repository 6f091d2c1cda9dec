"""
Shared utilities for parity verification

Provides:
- logging: structured logging setup and context logger
- metrics: Prometheus metrics publishing
- tracing: OpenTelemetry spans
- retry: exponential backoff for connection setup
- vault_client: HashiCorp Vault integration for secrets management
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing", "retry", "vault_client"]
