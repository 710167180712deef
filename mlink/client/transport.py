"""
Transport protocol for action endpoints.

Defines the seam where the HTTP implementation plugs in. The controller
depends on this protocol, not on httpx directly, so tests and hosts can
swap the transport without touching state-machine logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)

Non-success HTTP statuses are *not* errors at this layer: they come back
as a TransportResponse so the caller can read the server's error body.
Only transport-level failures (connect, timeout, protocol) raise, as
NetworkError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Protocol, runtime_checkable

import httpx

from mlink.errors import NetworkError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """
    Attributes:
        status_code: HTTP status.
        reason: HTTP reason phrase.
        body: Parsed JSON body, or None if empty or not JSON.
    """

    status_code: int
    reason: str = ""
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class ActionTransport(Protocol):
    """Async transport for action metadata fetches and transaction requests."""

    async def get_json(self, url: str) -> TransportResponse:
        """GET ``url`` expecting JSON."""
        ...

    async def post_json(self, url: str, payload: Dict[str, Any]) -> TransportResponse:
        """POST ``payload`` as JSON to ``url``."""
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    Args:
        timeout: Request timeout in seconds.
        headers: Extra headers for every request.
        client: Shared AsyncClient to use. When omitted, each request opens
            and closes its own client. A supplied client is never closed here.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._client = client

    async def get_json(self, url: str) -> TransportResponse:
        return await self._request("GET", url, None)

    async def post_json(self, url: str, payload: Dict[str, Any]) -> TransportResponse:
        return await self._request("POST", url, payload)

    async def _request(
        self, method: str, url: str, payload: Dict[str, Any] | None
    ) -> TransportResponse:
        headers = {"Accept": "application/json", **self._headers}
        if payload is not None:
            headers["Content-Type"] = "application/json"

        try:
            if self._client is not None:
                response = await self._client.request(method, url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timed out after {self._timeout}s",
                error_code="TIMEOUT",
                details={"url": url, "timeout_s": self._timeout},
            ) from e
        except httpx.ConnectError as e:
            raise NetworkError(
                f"Failed to connect to {url}",
                error_code="CONNECTION_FAILED",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"HTTP error: {e}",
                error_code="HTTP_ERROR",
                details={"url": url, "error": str(e)},
            ) from e

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=_parse_body(response),
        )


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
