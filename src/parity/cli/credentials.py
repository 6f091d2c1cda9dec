"""
Configuration assembly and logging setup for CLI.

This module builds the run's ParityConfig from command-line flags, Vault
or the dataset's dotenv files, and configures logging for the CLI
application.
"""

import argparse
import logging
import os
from dataclasses import replace
from pathlib import Path

from src.utils.logging import setup_logging as _setup_logging
from src.utils.vault_client import VaultClient

from ..config import (
    BackendSettings,
    ParityConfig,
    api_bases_from_env,
    load_environment,
    settings_from_env,
    settings_from_secret,
)

logger = logging.getLogger(__name__)


def setup_logging(args: argparse.Namespace) -> None:
    """
    Setup logging configuration

    Args:
        args: Parsed command-line arguments (log_level, log_file, json_logs)
    """
    _setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.json_logs,
    )


def _override(settings: BackendSettings, **flags) -> BackendSettings:
    changes = {key: value for key, value in flags.items() if value is not None}
    if not changes:
        return settings
    return replace(settings, **changes)


def get_settings_from_vault(dataset_version: str) -> tuple[BackendSettings, BackendSettings]:
    """
    Fetch both backends' settings from Vault

    Raises:
        ValueError: If Vault is not configured or a secret is incomplete
        requests.RequestException: If Vault cannot be reached
    """
    vault_client = VaultClient()
    postgres = settings_from_secret(
        vault_client.get_backend_credentials(dataset_version, "postgres"), "postgres"
    )
    mssql = settings_from_secret(
        vault_client.get_backend_credentials(dataset_version, "mssql"), "mssql"
    )
    logger.info("Successfully fetched credentials from Vault")
    return postgres, mssql


def build_config(args: argparse.Namespace, dataset_version: str) -> ParityConfig:
    """
    Assemble the run configuration

    Priority: command-line flags, then Vault (when --use-vault), then the
    environment (the dataset's dotenv files are loaded first).

    Args:
        args: Parsed command-line arguments of the database or api command
        dataset_version: Selected dataset version

    Returns:
        ParityConfig for the run
    """
    load_environment(dataset_version, getattr(args, 'env_dir', '.'))

    if getattr(args, 'use_vault', False):
        postgres, mssql = get_settings_from_vault(dataset_version)
    else:
        postgres, mssql = settings_from_env(dataset_version)

    postgres = _override(
        postgres,
        host=getattr(args, 'postgres_host', None),
        port=getattr(args, 'postgres_port', None),
        database=getattr(args, 'postgres_database', None),
    )
    mssql = _override(
        mssql,
        host=getattr(args, 'mssql_server', None),
        database=getattr(args, 'mssql_database', None),
    )

    postgres_api, mssql_api = api_bases_from_env(dataset_version)

    config = ParityConfig(
        dataset_version=dataset_version,
        postgres=postgres,
        mssql=mssql,
        postgres_api_base=getattr(args, 'postgres_api', None) or postgres_api,
        mssql_api_base=getattr(args, 'mssql_api', None) or mssql_api,
        schema=getattr(args, 'schema', None) or ParityConfig.schema,
        request_timeout=args.request_timeout,
        data_dir=Path(getattr(args, 'data_dir', None) or ParityConfig.data_dir),
    )

    logger.debug(
        f"Configuration: dataset={config.dataset_version}, "
        f"postgres={config.postgres.describe()}, mssql={config.mssql.describe()}, "
        f"timeout={config.request_timeout}s"
    )
    return config


def access_token(args: argparse.Namespace) -> str | None:
    """Bearer token for the REST services (flag, then ACCESS_TOKEN)."""
    return getattr(args, 'access_token', None) or os.getenv("ACCESS_TOKEN")
