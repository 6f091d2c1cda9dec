"""
PostgreSQL row source (backend A).

Reads the oneroster materialized views through psycopg2. Structured
columns arrive as native dicts/lists and booleans as bool.
"""

import logging
from typing import Any

import psycopg2
from opentelemetry import trace

from src.utils.retry import retry_database_operation
from src.utils.tracing import add_span_attributes, trace_operation

from ..align import Row
from ..config import BackendSettings
from ..endpoints import DEFAULT_SCHEMA, EndpointSpec
from .base import (
    UNKNOWN_STANDARD,
    BackendInfo,
    RowSource,
    standard_from_script_name,
    standard_from_tables,
)
from .quoting import qualified_name, quote_postgres_identifier

logger = logging.getLogger(__name__)

BACKEND_NAME = "postgres"


@retry_database_operation(max_retries=3, base_delay=1.0)
def open_connection(settings: BackendSettings, statement_timeout: float | None = None):
    """
    Open a read-only autocommit connection

    Args:
        settings: Connection settings
        statement_timeout: Per-statement timeout in seconds

    Returns:
        psycopg2 connection
    """
    options = None
    if statement_timeout:
        options = f"-c statement_timeout={int(statement_timeout * 1000)}"

    connection = psycopg2.connect(
        host=settings.host,
        port=settings.port or 5432,
        dbname=settings.database,
        user=settings.username,
        password=settings.password,
        sslmode="require" if settings.ssl else "prefer",
        connect_timeout=30,
        options=options,
        application_name="oneroster-parity",
    )
    connection.set_session(readonly=True, autocommit=True)
    return connection


class PostgresRowSource(RowSource):
    """
    Row source over a psycopg2 connection.

    Args:
        connection: Open DB-API connection
        schema: Schema holding the compared views
    """

    name = BACKEND_NAME

    def __init__(self, connection: Any, schema: str = DEFAULT_SCHEMA):
        self.connection = connection
        self.schema = schema

    @classmethod
    def connect(
        cls,
        settings: BackendSettings,
        schema: str = DEFAULT_SCHEMA,
        statement_timeout: float | None = None,
    ) -> "PostgresRowSource":
        logger.info(f"Connecting to PostgreSQL at {settings.describe()}")
        return cls(open_connection(settings, statement_timeout), schema=schema)

    def _table(self, endpoint: EndpointSpec) -> str:
        return quote_postgres_identifier(qualified_name(self.schema, endpoint.collection))

    def list_columns(self, endpoint: EndpointSpec) -> list[str]:
        try:
            with self.connection.cursor() as cursor:
                cursor.execute(f"SELECT * FROM {self._table(endpoint)} LIMIT 0")
                columns = [desc[0] for desc in cursor.description or []]
                if columns:
                    return columns

                cursor.execute(
                    "SELECT column_name FROM information_schema.columns "
                    "WHERE table_schema = %s AND table_name = %s "
                    "ORDER BY ordinal_position",
                    (self.schema, endpoint.collection),
                )
                return [row[0] for row in cursor.fetchall()]
        except (psycopg2.Error, ValueError) as e:
            logger.error(f"Error getting columns for {endpoint.name} from PostgreSQL: {e}")
            return []

    def fetch_all_rows(self, endpoint: EndpointSpec) -> list[Row]:
        with trace_operation(
            "fetch_rows",
            kind=trace.SpanKind.CLIENT,
            backend=self.name,
            endpoint=endpoint.name,
        ):
            with self.connection.cursor() as cursor:
                cursor.execute(f"SELECT * FROM {self._table(endpoint)}")
                columns = [desc[0] for desc in cursor.description]
                rows = [
                    Row(endpoint.name, self.name, dict(zip(columns, values)))
                    for values in cursor.fetchall()
                ]
            add_span_attributes(row_count=len(rows))

        logger.debug(f"Fetched {len(rows)} rows for {endpoint.name} from PostgreSQL")
        return rows

    def _scalar(self, cursor: Any, query: str) -> Any:
        cursor.execute(query)
        row = cursor.fetchone()
        return row[0] if row else None

    def _detect_standard(self, cursor: Any) -> str:
        has_journal = self._scalar(
            cursor,
            "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = 'public' AND table_name = 'DeployJournal')",
        )
        if has_journal:
            script = self._scalar(
                cursor,
                'SELECT scriptname FROM public."DeployJournal" '
                "WHERE scriptname LIKE '%Standard.4.%' OR scriptname LIKE '%Standard.5.%' "
                "ORDER BY scriptname LIMIT 1",
            )
            standard = standard_from_script_name(script)
            if standard != UNKNOWN_STANDARD:
                return standard

        has_contact = self._scalar(
            cursor,
            "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = 'edfi' AND table_name = 'contact')",
        )
        has_parent = self._scalar(
            cursor,
            "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = 'edfi' AND table_name = 'parent')",
        )
        return standard_from_tables(bool(has_contact), bool(has_parent))

    def describe(self) -> BackendInfo:
        with trace_operation("describe_backend", backend=self.name):
            with self.connection.cursor() as cursor:
                cursor.execute(
                    "SELECT version(), current_database(), current_user"
                )
                version, database, user = cursor.fetchone()

                try:
                    standard = self._detect_standard(cursor)
                except psycopg2.Error as e:
                    logger.debug(f"Data standard detection failed on PostgreSQL: {e}")
                    standard = UNKNOWN_STANDARD

        # "PostgreSQL 15.4 on x86_64-pc-linux-gnu, ..." -> "15.4"
        parts = str(version).split(" ")
        server_version = parts[1] if len(parts) > 1 else str(version)

        return BackendInfo(
            backend=self.name,
            server_version=server_version,
            database=database,
            user=user,
            data_standard=standard,
        )

    def close(self) -> None:
        if self.connection is not None and not getattr(self.connection, "closed", False):
            self.connection.close()
            logger.debug("PostgreSQL connection closed")
