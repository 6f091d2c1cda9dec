"""
REST envelope source for API mode.

Fetches OneRoster endpoints from one service deployment with requests.
Local deployments run with authentication disabled, so no token is sent
unless one is configured.
"""

import logging
from typing import Any

import requests
from opentelemetry import trace

from src.utils.tracing import add_span_attributes, trace_operation

from ..endpoints import EndpointSpec
from ..errors import BackendError
from .base import EnvelopeSource

logger = logging.getLogger(__name__)


class RestEnvelopeSource(EnvelopeSource):
    """
    Envelope source over HTTP.

    Args:
        name: Backend name used in errors and reports ("postgres", "mssql")
        base_url: Service base URL, e.g. "http://localhost:3000"
        timeout: Request timeout in seconds
        access_token: Optional bearer token
        session: Optional requests session (a new one is created otherwise)
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: float = 120.0,
        access_token: str | None = None,
        session: requests.Session | None = None,
    ):
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if access_token:
            self.session.headers["Authorization"] = f"Bearer {access_token}"

    def url_for(self, endpoint: EndpointSpec) -> str:
        if not endpoint.path:
            raise BackendError(self.name, f"Endpoint {endpoint.name} has no API path")
        return f"{self.base_url}{endpoint.path}"

    def fetch_envelope(self, endpoint: EndpointSpec) -> dict[str, Any]:
        """
        Fetch the complete response envelope of an endpoint

        Raises:
            BackendError: On connection failure, timeout, a non-2xx status
                or a body that is not a JSON object
        """
        url = self.url_for(endpoint)

        with trace_operation(
            "fetch_envelope",
            kind=trace.SpanKind.CLIENT,
            backend=self.name,
            endpoint=endpoint.name,
            url=url,
        ):
            try:
                response = self.session.get(url, timeout=self.timeout)
            except requests.Timeout as e:
                raise BackendError(
                    self.name, f"request to {url} timed out after {self.timeout}s"
                ) from e
            except requests.RequestException as e:
                raise BackendError(self.name, f"request to {url} failed: {e}") from e

            add_span_attributes(http_status=response.status_code)

            if not response.ok:
                raise BackendError(
                    self.name,
                    f"Failed to fetch {endpoint.path} from {self.base_url}: "
                    f"{response.status_code} {response.reason}",
                )

            try:
                envelope = response.json()
            except ValueError as e:
                raise BackendError(
                    self.name, f"response from {url} is not valid JSON"
                ) from e

        if not isinstance(envelope, dict):
            raise BackendError(self.name, f"response from {url} is not a JSON object")

        logger.debug(f"Fetched {endpoint.name} envelope from {self.base_url}")
        return envelope

    def close(self) -> None:
        self.session.close()
