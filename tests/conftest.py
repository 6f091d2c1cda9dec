"""
Pytest configuration and fixtures for parity verification tests.
Provides shared fixtures for endpoint specs, rows and fake backends.
"""

import os
from pathlib import Path

import pytest

from src.parity.align import Row
from src.parity.config import ParityConfig
from src.parity.endpoints import API_ENDPOINTS, DATABASE_ENDPOINTS


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def users_spec():
    """Database-mode users endpoint."""
    return DATABASE_ENDPOINTS["users"]


@pytest.fixture
def orgs_api_spec():
    """API-mode orgs endpoint."""
    return API_ENDPOINTS["orgs"]


@pytest.fixture
def parity_config(tmp_path: Path) -> ParityConfig:
    """Run configuration writing envelopes into a temporary directory."""
    return ParityConfig(dataset_version="ds5", request_timeout=5, data_dir=tmp_path)


@pytest.fixture
def make_row():
    """Factory building a Row for a backend."""

    def _make(data: dict, backend: str = "postgres", endpoint: str = "users") -> Row:
        return Row(endpoint=endpoint, backend=backend, data=data)

    return _make


@pytest.fixture(autouse=True)
def set_test_env_vars() -> None:
    """Set default test environment variables if not already set."""
    defaults = {
        "DB_HOST": "localhost",
        "DB_NAME": "oneroster",
        "DB_USER": "postgres",
        "DB_PASS": "postgres_secure_password",
        "MSSQL_SERVER": "localhost",
        "MSSQL_DATABASE": "oneroster",
        "MSSQL_USER": "sa",
        "MSSQL_PASSWORD": "YourStrong!Passw0rd",
        "VAULT_ADDR": "http://localhost:8200",
        "VAULT_TOKEN": "dev-root-token",
    }

    for key, value in defaults.items():
        if key not in os.environ:
            os.environ[key] = value
