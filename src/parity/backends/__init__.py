"""
Data sources compared by the parity engine.

- PostgresRowSource: backend A, PostgreSQL materialized views (psycopg2)
- SqlServerRowSource: backend B, SQL Server tables (pyodbc)
- RestEnvelopeSource: REST deployments of either backend (requests)
"""

from .base import BackendInfo, EnvelopeSource, RowSource
from .postgres import PostgresRowSource
from .rest import RestEnvelopeSource
from .sqlserver import SqlServerRowSource

__all__ = [
    "BackendInfo",
    "RowSource",
    "EnvelopeSource",
    "PostgresRowSource",
    "SqlServerRowSource",
    "RestEnvelopeSource",
]
