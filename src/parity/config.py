"""
Run configuration.

A ParityConfig is built once by the CLI layer (from flags, Vault or the
dataset's dotenv files) and passed into the engine; nothing in the
comparison pipeline reads the environment.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .endpoints import DATASET_VERSIONS, DEFAULT_DATASET_VERSION, DEFAULT_SCHEMA
from .errors import InvalidArgument

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 120.0

POSTGRES_DEFAULT_PORTS = {"ds4": 5435, "ds5": 5434}
REST_DEFAULT_PORTS = {"ds4": (3002, 3003), "ds5": (3000, 3001)}


@dataclass(frozen=True)
class BackendSettings:
    """Connection settings of one database backend."""

    host: str = "localhost"
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    ssl: bool = False
    encrypt: bool = False
    trust_server_certificate: bool = False

    def describe(self) -> str:
        """Location without credentials, for logs."""
        location = f"{self.host}:{self.port}" if self.port else self.host
        return f"{location}/{self.database or '?'} as {self.username or '?'}"


@dataclass(frozen=True)
class ParityConfig:
    """
    Everything one verification run needs.

    Attributes:
        dataset_version: "ds4" or "ds5"
        postgres: Settings of backend A (PostgreSQL)
        mssql: Settings of backend B (SQL Server)
        postgres_api_base: Base URL of the REST deployment backed by A
        mssql_api_base: Base URL of the REST deployment backed by B
        schema: Schema holding the compared views/tables
        request_timeout: Per-fetch timeout in seconds
        data_dir: Directory receiving raw API envelopes
    """

    dataset_version: str = DEFAULT_DATASET_VERSION
    postgres: BackendSettings = field(default_factory=BackendSettings)
    mssql: BackendSettings = field(default_factory=BackendSettings)
    postgres_api_base: str = "http://localhost:3000"
    mssql_api_base: str = "http://localhost:3001"
    schema: str = DEFAULT_SCHEMA
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    data_dir: Path = Path("tests/data")

    def __post_init__(self) -> None:
        if self.dataset_version not in DATASET_VERSIONS:
            raise InvalidArgument(
                f"Unknown dataset version: {self.dataset_version}. "
                f"Expected one of: {', '.join(DATASET_VERSIONS)}"
            )
        if self.request_timeout <= 0:
            raise InvalidArgument(
                f"request_timeout must be positive, got {self.request_timeout}"
            )

    def with_overrides(self, **changes: Any) -> "ParityConfig":
        return replace(self, **changes)


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def _int_or_none(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidArgument(f"Expected an integer port, got {value!r}") from None


def dotenv_files(dataset_version: str) -> tuple[str, str]:
    """PostgreSQL and SQL Server dotenv file names of a dataset version."""
    if dataset_version == "ds4":
        return ".env.ds4.postgres", ".env.ds4.mssql"
    return ".env.postgres", ".env.mssql"


def load_environment(dataset_version: str, base_dir: Path | str = ".") -> list[Path]:
    """
    Load the dataset's dotenv files into the process environment

    The PostgreSQL file is loaded first; the SQL Server file never overrides
    variables that are already set. Missing files are skipped.

    Returns:
        Paths that were loaded
    """
    loaded = []
    for name in dotenv_files(dataset_version):
        path = Path(base_dir) / name
        if path.is_file():
            load_dotenv(path, override=False)
            loaded.append(path)
            logger.debug(f"Loaded environment from {path}")
        else:
            logger.debug(f"Environment file {path} not found, skipping")
    return loaded


def settings_from_env(
    dataset_version: str,
    environ: Mapping[str, str] | None = None,
) -> tuple[BackendSettings, BackendSettings]:
    """
    Build backend settings from environment variables

    Args:
        dataset_version: Selects the PostgreSQL default port
        environ: Variables to read (default: os.environ)

    Returns:
        Tuple of (postgres_settings, mssql_settings)
    """
    env = os.environ if environ is None else environ

    postgres = BackendSettings(
        host=env.get("DB_HOST") or "localhost",
        port=_int_or_none(env.get("DB_PORT")) or POSTGRES_DEFAULT_PORTS[dataset_version],
        database=env.get("DB_NAME"),
        username=env.get("DB_USER"),
        password=env.get("DB_PASS"),
        ssl=_flag(env.get("DB_SSL")),
    )

    mssql = BackendSettings(
        host=env.get("MSSQL_SERVER") or "localhost",
        port=_int_or_none(env.get("MSSQL_PORT")),
        database=env.get("MSSQL_DATABASE"),
        username=env.get("MSSQL_USER"),
        password=env.get("MSSQL_PASSWORD"),
        encrypt=_flag(env.get("MSSQL_ENCRYPT")),
        trust_server_certificate=_flag(env.get("MSSQL_TRUST_SERVER_CERTIFICATE")),
    )

    return postgres, mssql


def api_bases_from_env(
    dataset_version: str,
    environ: Mapping[str, str] | None = None,
) -> tuple[str, str]:
    """
    REST base URLs of both deployments

    PORT overrides the port of the PostgreSQL-backed deployment.
    """
    env = os.environ if environ is None else environ
    default_pg_port, mssql_port = REST_DEFAULT_PORTS[dataset_version]
    pg_port = _int_or_none(env.get("PORT")) or default_pg_port
    return f"http://localhost:{pg_port}", f"http://localhost:{mssql_port}"


def settings_from_secret(secret: Mapping[str, Any], backend: str) -> BackendSettings:
    """Convert a Vault secret into BackendSettings."""
    if backend == "postgres":
        return BackendSettings(
            host=secret["host"],
            port=int(secret.get("port", 5432)),
            database=secret["database"],
            username=secret["username"],
            password=secret["password"],
            ssl=bool(secret.get("ssl", False)),
        )
    return BackendSettings(
        host=secret["server"],
        port=int(secret["port"]) if secret.get("port") else None,
        database=secret["database"],
        username=secret["username"],
        password=secret["password"],
        encrypt=bool(secret.get("encrypt", False)),
        trust_server_certificate=bool(secret.get("trust_server_certificate", False)),
    )
