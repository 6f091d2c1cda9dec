"""
HashiCorp Vault client for fetching backend connection settings

Connection settings for each backend of a dataset version are stored in
the KV v2 secrets engine under ``secret/parity/<dataset>/<backend>``.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

# Required secret fields per backend
REQUIRED_FIELDS = {
    "postgres": ["host", "database", "username", "password"],
    "mssql": ["server", "database", "username", "password"],
}

_SAFE_SEGMENT = re.compile(r"^[a-zA-Z0-9_]+$")
_SAFE_PATH = re.compile(r"^[a-zA-Z0-9/_-]+$")


class VaultClient:
    """
    HashiCorp Vault client for secrets management

    Reads KV v2 secrets over the Vault HTTP API.
    """

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: float = 10,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            timeout: HTTP timeout in seconds

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace or os.getenv("VAULT_NAMESPACE")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )

        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")

        self.headers = {
            "X-Vault-Token": self.vault_token,
            "Content-Type": "application/json",
        }
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.info(f"Initialized Vault client for {self.vault_addr}")

    @staticmethod
    def kv2_path(secret_path: str) -> str:
        """
        Validate a secret path and insert the KV v2 ``data`` segment

        Raises:
            ValueError: If the path is empty, traverses upwards or contains
                characters other than alphanumerics, slash, underscore, hyphen
        """
        if not secret_path or not isinstance(secret_path, str):
            raise ValueError("secret_path must be a non-empty string")

        if ".." in secret_path or secret_path.startswith("//"):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Path traversal attempts are not allowed."
            )

        if not _SAFE_PATH.match(secret_path):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )

        if "/data/" in secret_path:
            return secret_path

        mount, _, rest = secret_path.partition("/")
        return f"{mount}/data/{rest}" if rest else f"{mount}/data"

    def get_secret(self, secret_path: str) -> Dict[str, Any]:
        """
        Fetch secret from Vault KV v2 secrets engine

        Args:
            secret_path: Path to secret (e.g., "secret/parity/ds5/postgres")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If secret_path is invalid or the secret is missing/empty
            requests.RequestException: If Vault request fails
        """
        path = self.kv2_path(secret_path)
        url = f"{self.vault_addr}/v1/{path}"

        logger.debug(f"Fetching secret from: {url}")

        response = requests.get(url, headers=self.headers, timeout=self.timeout)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {path}")

        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {path}")

        logger.debug(f"Successfully fetched secret from {path}")
        return secret_data

    def get_backend_credentials(self, dataset_version: str, backend: str) -> Dict[str, Any]:
        """
        Fetch connection settings of one backend for one dataset version

        Args:
            dataset_version: "ds4" or "ds5"
            backend: "postgres" or "mssql"

        Returns:
            Secret data; PostgreSQL secrets carry host, port, database,
            username, password; SQL Server secrets carry server, database,
            username, password

        Raises:
            ValueError: If arguments are invalid or required fields are missing
        """
        for name, value in (("dataset_version", dataset_version), ("backend", backend)):
            if not value or not isinstance(value, str) or not _SAFE_SEGMENT.match(value):
                raise ValueError(
                    f"Invalid {name}: {value!r}. "
                    "Only alphanumeric characters and underscores are allowed."
                )

        if backend not in REQUIRED_FIELDS:
            raise ValueError(
                f"Unsupported backend: {backend}. Must be 'postgres' or 'mssql'."
            )

        secret_data = dict(self.get_secret(f"secret/parity/{dataset_version}/{backend}"))

        missing_fields = [f for f in REQUIRED_FIELDS[backend] if f not in secret_data]
        if missing_fields:
            raise ValueError(
                f"Missing required fields in secret: {', '.join(missing_fields)}"
            )

        logger.info(f"Fetched {backend} credentials for {dataset_version} from Vault")
        return secret_data
