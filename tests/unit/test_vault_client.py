"""
Unit tests for src/utils/vault_client.py

Tests cover initialization, KV v2 path handling, secret retrieval
and backend credential fetching.
"""

import pytest
from unittest.mock import Mock, patch
import requests

from src.utils.vault_client import VaultClient


def _response(status_code=200, data=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = {"data": {"data": data or {}}}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def client():
    return VaultClient(vault_addr="https://vault.example.com/", vault_token="test-token-123")


class TestVaultClientInit:
    """Test VaultClient initialization scenarios"""

    def test_init_with_explicit_parameters(self, client):
        assert client.vault_addr == "https://vault.example.com"
        assert client.headers == {
            "X-Vault-Token": "test-token-123",
            "Content-Type": "application/json",
        }

    def test_init_with_env_variables(self, monkeypatch):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.env.com")
        monkeypatch.setenv("VAULT_TOKEN", "env-token-456")
        monkeypatch.setenv("VAULT_NAMESPACE", "edu")

        client = VaultClient()

        assert client.vault_addr == "https://vault.env.com"
        assert client.headers["X-Vault-Namespace"] == "edu"

    def test_missing_address(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)

        with pytest.raises(ValueError, match="Vault address not provided"):
            VaultClient(vault_token="t")

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv("VAULT_TOKEN", raising=False)

        with pytest.raises(ValueError, match="Vault token not provided"):
            VaultClient(vault_addr="https://vault.example.com")


class TestKv2Path:
    """Test KV v2 path handling"""

    def test_inserts_data_segment(self):
        assert VaultClient.kv2_path("secret/parity/ds5/postgres") == "secret/data/parity/ds5/postgres"

    def test_existing_data_segment_is_kept(self):
        assert VaultClient.kv2_path("secret/data/parity") == "secret/data/parity"

    @pytest.mark.parametrize("path", ["", "secret/../sys", "//secret", "secret/pa rity"])
    def test_invalid_paths(self, path):
        with pytest.raises(ValueError):
            VaultClient.kv2_path(path)


class TestGetSecret:
    """Test secret retrieval"""

    @patch('src.utils.vault_client.requests.get')
    def test_success(self, mock_get, client):
        mock_get.return_value = _response(data={"host": "pg"})

        assert client.get_secret("secret/parity/ds5/postgres") == {"host": "pg"}
        mock_get.assert_called_once_with(
            "https://vault.example.com/v1/secret/data/parity/ds5/postgres",
            headers=client.headers,
            timeout=10,
        )

    @patch('src.utils.vault_client.requests.get')
    def test_not_found(self, mock_get, client):
        mock_get.return_value = _response(status_code=404)

        with pytest.raises(ValueError, match="Secret not found"):
            client.get_secret("secret/parity/ds5/postgres")

    @patch('src.utils.vault_client.requests.get')
    def test_server_error(self, mock_get, client):
        mock_get.return_value = _response(status_code=500)

        with pytest.raises(requests.HTTPError):
            client.get_secret("secret/parity/ds5/postgres")

    @patch('src.utils.vault_client.requests.get')
    def test_empty_secret(self, mock_get, client):
        mock_get.return_value = _response(data={})

        with pytest.raises(ValueError, match="No data found"):
            client.get_secret("secret/parity/ds5/postgres")


class TestGetBackendCredentials:
    """Test backend credential fetching"""

    @patch('src.utils.vault_client.requests.get')
    def test_mssql_credentials(self, mock_get, client):
        secret = {"server": "sql", "database": "EdFi", "username": "sa", "password": "pw"}
        mock_get.return_value = _response(data=secret)

        assert client.get_backend_credentials("ds4", "mssql") == secret
        assert mock_get.call_args[0][0].endswith("/v1/secret/data/parity/ds4/mssql")

    @patch('src.utils.vault_client.requests.get')
    def test_missing_fields(self, mock_get, client):
        mock_get.return_value = _response(data={"host": "pg"})

        with pytest.raises(ValueError) as exc_info:
            client.get_backend_credentials("ds5", "postgres")

        assert "database, username, password" in str(exc_info.value)

    def test_unsupported_backend(self, client):
        with pytest.raises(ValueError, match="Unsupported backend"):
            client.get_backend_credentials("ds5", "oracle")

    def test_invalid_dataset_version(self, client):
        with pytest.raises(ValueError, match="Invalid dataset_version"):
            client.get_backend_credentials("ds5/../sys", "postgres")
