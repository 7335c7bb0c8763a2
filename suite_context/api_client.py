"""
Control-plane REST client.

Requests are only possible while an identity is bound with
``authenticated()``; the bearer token comes from the CLI session of that
identity (see ``user_context.with_identity``).
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import ApiRequestError
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)

Payload = Union[str, Mapping[str, Any], None]


class ResourceMetadata(BaseModel):
    """``metadata`` block of a v2 resource."""

    model_config = ConfigDict(extra="ignore")

    guid: str
    url: Optional[str] = None


class GenericResource(BaseModel):
    """Envelope returned by v2 create endpoints."""

    model_config = ConfigDict(extra="ignore")

    metadata: ResourceMetadata
    entity: Dict[str, Any] = {}


class ApiClient:
    """
    Synchronous JSON client for the platform API.

    Handles authentication headers, status checking and response decoding.
    """

    def __init__(
        self,
        timeout: float = Timeouts.HTTP,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, mainly for tests
        """
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.Client] = None

    @property
    def is_authenticated(self) -> bool:
        return self._http_client is not None

    @contextmanager
    def authenticated(
        self, endpoint: str, token: str, verify: bool = True
    ) -> Iterator["ApiClient"]:
        """Bind the client to ``endpoint`` with ``token`` for the block.

        The previous binding, if any, is restored on exit.
        """
        previous = self._http_client
        client = httpx.Client(
            base_url=endpoint.rstrip("/"),
            timeout=httpx.Timeout(self.timeout),
            verify=verify,
            transport=self._transport,
            headers={
                "Authorization": token,
                "Accept": "application/json",
                "User-Agent": "suite-context/1.0",
            },
        )
        self._http_client = client
        try:
            yield self
        finally:
            self._http_client = previous
            client.close()

    def request(
        self, method: str, path: str, payload: Payload = None
    ) -> Optional[Dict[str, Any]]:
        """
        Issue a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the API endpoint, query string included
            payload: Pre-encoded JSON string, a mapping to encode, or None

        Returns:
            Decoded JSON object, or None for an empty body

        Raises:
            ApiRequestError: no identity bound, transport failure, any non-2xx
                status or a body that is not JSON
        """
        if self._http_client is None:
            raise ApiRequestError(
                "No identity bound to the API client",
                method=method,
                path=path,
                recovery_suggestion="Issue requests inside with_identity()",
            )

        content: Optional[str] = None
        headers = {}
        if payload is not None:
            content = payload if isinstance(payload, str) else json.dumps(payload)
            headers["Content-Type"] = "application/json"

        logger.debug(f"API request: {method} {path}")
        try:
            response = self._http_client.request(
                method, path, content=content, headers=headers
            )
        except httpx.TimeoutException as e:
            raise ApiRequestError(
                f"{method} {path} timed out after {self.timeout:g}s",
                method=method,
                path=path,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise ApiRequestError(
                f"{method} {path} failed: {e}", method=method, path=path, cause=e
            ) from e

        if not response.is_success:
            logger.error(f"API request failed: {method} {path} -> {response.status_code}")
            raise ApiRequestError(
                f"{method} {path} returned {response.status_code}",
                method=method,
                path=path,
                status_code=response.status_code,
                context={"body": response.text[:300]},
            )

        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiRequestError(
                f"{method} {path} returned a body that is not JSON",
                method=method,
                path=path,
                status_code=response.status_code,
                cause=e,
            ) from e

    def create_resource(self, path: str, payload: Payload) -> GenericResource:
        """POST ``payload`` to ``path`` and parse the created resource."""
        body = self.request("POST", path, payload)
        try:
            return GenericResource.model_validate(body)
        except ValidationError as e:
            raise ApiRequestError(
                f"POST {path} response has no resource metadata",
                method="POST",
                path=path,
                cause=e,
            ) from e

    def delete(self, path: str) -> None:
        self.request("DELETE", path)
