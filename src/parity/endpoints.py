"""
Endpoint registry and dataset-version selection.

Database mode compares the oneroster12 views/tables directly; API mode
compares the REST envelopes returned by both service deployments.
"""

from dataclasses import dataclass

from .errors import InvalidArgument

DATASET_VERSIONS = ("ds4", "ds5")
DEFAULT_DATASET_VERSION = "ds5"

DEFAULT_SCHEMA = "oneroster12"
DEFAULT_KEY_FIELD = "sourcedId"

API_PREFIX = "/ims/oneroster/rostering/v1p2"


@dataclass(frozen=True)
class EndpointSpec:
    """
    One logical dataset compared across both backends.

    Attributes:
        name: Endpoint name used on the command line and in reports
        collection: Table/view name (database mode) or response property
            holding the record array (API mode)
        key_field: Row key used to align rows
        path: REST path relative to the service base URL (API mode only)
        display_name: Human-readable name for console output
    """

    name: str
    collection: str
    key_field: str = DEFAULT_KEY_FIELD
    path: str | None = None
    display_name: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.name


DATABASE_ENDPOINTS: dict[str, EndpointSpec] = {
    name: EndpointSpec(name=name, collection=name)
    for name in (
        "classes",
        "courses",
        "academicsessions",
        "enrollments",
        "demographics",
        "users",
        "orgs",
    )
}

API_ENDPOINTS: dict[str, EndpointSpec] = {
    "orgs": EndpointSpec(
        name="orgs",
        collection="orgs",
        path=f"{API_PREFIX}/orgs",
        display_name="organizations",
    ),
    "students": EndpointSpec(
        name="students",
        collection="users",
        path=f"{API_PREFIX}/students?limit=100",
        display_name="students",
    ),
    "teachers": EndpointSpec(
        name="teachers",
        collection="users",
        path=f"{API_PREFIX}/teachers?limit=100",
        display_name="teachers",
    ),
    "parents": EndpointSpec(
        name="parents",
        collection="users",
        path=f"{API_PREFIX}/users?role=parent&limit=100",
        display_name="parents",
    ),
    "courses": EndpointSpec(
        name="courses",
        collection="courses",
        path=f"{API_PREFIX}/courses?limit=100",
        display_name="courses",
    ),
    "classes": EndpointSpec(
        name="classes",
        collection="classes",
        path=f"{API_PREFIX}/classes",
        display_name="classes",
    ),
    "demographics": EndpointSpec(
        name="demographics",
        collection="demographics",
        path=f"{API_PREFIX}/demographics?limit=100",
        display_name="demographics",
    ),
    "academicSessions": EndpointSpec(
        name="academicSessions",
        collection="academicsessions",
        path=f"{API_PREFIX}/academicSessions",
        display_name="academic sessions",
    ),
    "enrollments": EndpointSpec(
        name="enrollments",
        collection="enrollments",
        path=f"{API_PREFIX}/enrollments?limit=100",
        display_name="enrollments",
    ),
}


def registry_for(mode: str) -> dict[str, EndpointSpec]:
    """Endpoint table for "database" or "api" mode."""
    if mode == "database":
        return DATABASE_ENDPOINTS
    if mode == "api":
        return API_ENDPOINTS
    raise InvalidArgument(f"Unknown comparison mode: {mode}")


def parse_selector(args: list[str] | tuple[str, ...]) -> tuple[str, str | None]:
    """
    Split positional arguments into dataset version and endpoint filter

    The first positional is the dataset version when it is one of
    DATASET_VERSIONS, otherwise it is taken as the endpoint filter.

    Args:
        args: Positional command-line arguments

    Returns:
        Tuple of (dataset_version, endpoint_filter or None)

    Raises:
        InvalidArgument: If more positionals are given than can be assigned
    """
    args = list(args)
    version = DEFAULT_DATASET_VERSION

    if args and args[0] in DATASET_VERSIONS:
        version = args.pop(0)

    if len(args) > 1:
        raise InvalidArgument(f"Unexpected arguments: {' '.join(args[1:])}")

    return version, (args[0] if args else None)


def select_endpoints(mode: str, endpoint_filter: str | None = None) -> list[EndpointSpec]:
    """
    Resolve the endpoints to compare for one run

    Args:
        mode: "database" or "api"
        endpoint_filter: Single endpoint name, or None for all endpoints

    Returns:
        Endpoint specs in registry order

    Raises:
        InvalidArgument: If the filter names no known endpoint
    """
    registry = registry_for(mode)
    if endpoint_filter is None:
        return list(registry.values())

    if endpoint_filter not in registry:
        raise InvalidArgument(
            f"Invalid endpoint: {endpoint_filter}. "
            f"Valid endpoints: {', '.join(registry)}"
        )
    return [registry[endpoint_filter]]
