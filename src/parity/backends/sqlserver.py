"""
SQL Server row source (backend B).

Reads the oneroster tables through pyodbc. Structured columns arrive as
JSON text and booleans as the strings "true"/"false"; the table may carry
extra ordering/natural-key columns.
"""

import logging
from typing import Any

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
from .quoting import qualified_name, quote_sqlserver_identifier

logger = logging.getLogger(__name__)

BACKEND_NAME = "mssql"
DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"


def _odbc_value(value: Any) -> str:
    # Braced values may contain ';'; a literal '}' is doubled
    text = "" if value is None else str(value)
    return "{" + text.replace("}", "}}") + "}"


def build_connection_string(settings: BackendSettings, driver: str = DEFAULT_DRIVER) -> str:
    """ODBC connection string for the given settings."""
    server = f"{settings.host},{settings.port}" if settings.port else settings.host
    return (
        f"DRIVER={{{driver}}};"
        f"SERVER={server};"
        f"DATABASE={_odbc_value(settings.database)};"
        f"UID={_odbc_value(settings.username)};"
        f"PWD={_odbc_value(settings.password)};"
        f"Encrypt={'yes' if settings.encrypt else 'no'};"
        f"TrustServerCertificate={'yes' if settings.trust_server_certificate else 'no'};"
    )


@retry_database_operation(max_retries=3, base_delay=1.0)
def open_connection(
    settings: BackendSettings,
    query_timeout: float | None = None,
    driver: str = DEFAULT_DRIVER,
):
    """
    Open an autocommit connection

    Args:
        settings: Connection settings
        query_timeout: Per-query timeout in seconds
        driver: ODBC driver name

    Returns:
        pyodbc connection
    """
    import pyodbc

    connection = pyodbc.connect(build_connection_string(settings, driver), timeout=30)
    connection.autocommit = True
    if query_timeout:
        connection.timeout = int(query_timeout)
    return connection


class SqlServerRowSource(RowSource):
    """
    Row source over a pyodbc connection.

    Args:
        connection: Open DB-API connection
        schema: Schema holding the compared tables
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
        query_timeout: float | None = None,
        driver: str = DEFAULT_DRIVER,
    ) -> "SqlServerRowSource":
        logger.info(f"Connecting to SQL Server at {settings.describe()}")
        return cls(open_connection(settings, query_timeout, driver), schema=schema)

    def _table(self, endpoint: EndpointSpec) -> str:
        return quote_sqlserver_identifier(qualified_name(self.schema, endpoint.collection))

    def _execute(self, query: str, *params: Any) -> Any:
        cursor = self.connection.cursor()
        cursor.execute(query, *params)
        return cursor

    def list_columns(self, endpoint: EndpointSpec) -> list[str]:
        cursor = None
        try:
            cursor = self._execute(f"SELECT TOP 0 * FROM {self._table(endpoint)}")
            columns = [desc[0] for desc in cursor.description or []]
            if columns:
                return columns

            cursor.close()
            cursor = self._execute(
                "SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
                "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? "
                "ORDER BY ORDINAL_POSITION",
                self.schema,
                endpoint.collection,
            )
            return [row[0] for row in cursor.fetchall()]
        except Exception as e:
            logger.error(f"Error getting columns for {endpoint.name} from SQL Server: {e}")
            return []
        finally:
            if cursor is not None:
                cursor.close()

    def fetch_all_rows(self, endpoint: EndpointSpec) -> list[Row]:
        with trace_operation(
            "fetch_rows",
            kind=trace.SpanKind.CLIENT,
            backend=self.name,
            endpoint=endpoint.name,
        ):
            cursor = self._execute(f"SELECT * FROM {self._table(endpoint)}")
            try:
                columns = [desc[0] for desc in cursor.description]
                rows = [
                    Row(endpoint.name, self.name, dict(zip(columns, values)))
                    for values in cursor.fetchall()
                ]
            finally:
                cursor.close()
            add_span_attributes(row_count=len(rows))

        logger.debug(f"Fetched {len(rows)} rows for {endpoint.name} from SQL Server")
        return rows

    def _scalar(self, query: str) -> Any:
        cursor = self._execute(query)
        try:
            row = cursor.fetchone()
            return row[0] if row else None
        finally:
            cursor.close()

    def _detect_standard(self) -> str:
        if self._scalar("SELECT OBJECT_ID('dbo.DeployJournal', 'U')"):
            script = self._scalar(
                "SELECT TOP 1 ScriptName FROM dbo.DeployJournal "
                "WHERE ScriptName LIKE '%Standard.4.%' OR ScriptName LIKE '%Standard.5.%' "
                "ORDER BY ScriptName"
            )
            standard = standard_from_script_name(script)
            if standard != UNKNOWN_STANDARD:
                return standard

        has_contact = self._scalar("SELECT OBJECT_ID('edfi.Contact', 'U')")
        has_parent = self._scalar("SELECT OBJECT_ID('edfi.Parent', 'U')")
        return standard_from_tables(bool(has_contact), bool(has_parent))

    def describe(self) -> BackendInfo:
        with trace_operation("describe_backend", backend=self.name):
            cursor = self._execute(
                "SELECT CAST(SERVERPROPERTY('ProductVersion') AS NVARCHAR(128)), "
                "DB_NAME(), CURRENT_USER"
            )
            try:
                version, database, user = cursor.fetchone()
            finally:
                cursor.close()

            try:
                standard = self._detect_standard()
            except Exception as e:
                logger.debug(f"Data standard detection failed on SQL Server: {e}")
                standard = UNKNOWN_STANDARD

        return BackendInfo(
            backend=self.name,
            server_version=str(version) if version is not None else None,
            database=database,
            user=user,
            data_standard=standard,
        )

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None
            logger.debug("SQL Server connection closed")
