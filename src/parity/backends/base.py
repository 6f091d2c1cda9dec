"""
Contracts of the data sources compared by the engine.

A RowSource exposes raw table scans of one database backend; an
EnvelopeSource exposes REST response envelopes of one service deployment.
Both are opened once per run and closed once all endpoints complete.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..align import Row
from ..endpoints import EndpointSpec

UNKNOWN_STANDARD = "Unknown"

_STANDARD_VERSION = re.compile(r"Standard\.(\d+\.\d+\.\d+)\.")


@dataclass(frozen=True)
class BackendInfo:
    """Server identity reported at run start."""

    backend: str
    server_version: str | None = None
    database: str | None = None
    user: str | None = None
    data_standard: str = UNKNOWN_STANDARD

    def major_standard(self) -> str | None:
        """Major data standard version ("4", "5") or None when unknown."""
        match = re.search(r"Standard (\d+)", self.data_standard)
        return match.group(1) if match else None


def standard_from_script_name(script_name: str | None) -> str:
    """
    Derive the data standard from a deployment journal script name

    Args:
        script_name: Name of a schema deployment script,
            e.g. "EdFi.Ods.Standard.Standard.5.2.0.Structure.0010-Tables.sql"

    Returns:
        "Data Standard <x.y.z>", "Data Standard <n>.x" or UNKNOWN_STANDARD
    """
    if not script_name:
        return UNKNOWN_STANDARD
    match = _STANDARD_VERSION.search(script_name)
    if match:
        return f"Data Standard {match.group(1)}"
    if "Standard.4." in script_name:
        return "Data Standard 4.x"
    if "Standard.5." in script_name:
        return "Data Standard 5.x"
    return UNKNOWN_STANDARD


def standard_from_tables(has_contact: bool, has_parent: bool) -> str:
    """Data standard inferred from the contact/parent entity rename in 5.x."""
    if has_contact:
        return "Data Standard 5.x"
    if has_parent:
        return "Data Standard 4.x"
    return UNKNOWN_STANDARD


class RowSource(ABC):
    """Read-only access to the oneroster views/tables of one database."""

    name: str = "database"

    @abstractmethod
    def list_columns(self, endpoint: EndpointSpec) -> list[str]:
        """
        Ordered column names of an endpoint's table

        Returns an empty list when the columns cannot be determined.
        """

    @abstractmethod
    def fetch_all_rows(self, endpoint: EndpointSpec) -> list[Row]:
        """All rows of an endpoint's table, in backend order."""

    def describe(self) -> BackendInfo:
        """Server identity; sources that cannot introspect return defaults."""
        return BackendInfo(backend=self.name)

    def close(self) -> None:
        """Release the underlying connection."""

    def __enter__(self) -> "RowSource":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class EnvelopeSource(ABC):
    """Read-only access to the REST endpoints of one deployment."""

    name: str = "api"

    @abstractmethod
    def fetch_envelope(self, endpoint: EndpointSpec) -> dict[str, Any]:
        """Complete JSON response envelope of an endpoint."""

    def close(self) -> None:
        """Release the underlying HTTP session."""

    def __enter__(self) -> "EnvelopeSource":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
