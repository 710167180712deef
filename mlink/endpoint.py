"""
Framework-agnostic wire endpoint for an Action.

Maps the three HTTP verbs of the protocol onto an Action and returns a
plain EndpointResponse that any server framework can emit:

    GET     → 200 ActionMetadata, or 500 {"error": {"message": ...}}
    OPTIONS → 200 with empty body (CORS preflight)
    POST    → 200 TransactionResponse
              400 on invalid JSON or request schema failure
              500 on dispatch or handler failure, including a handler
              result that cannot be serialized

Every response carries permissive CORS headers. Failures never produce a
partially-filled success body.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from mlink.action import Action
from mlink.errors import RequestValidationError

logger = logging.getLogger(__name__)

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")


@dataclass(frozen=True)
class EndpointResponse:
    """Status, JSON body (None for empty) and headers."""

    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    def body_bytes(self) -> bytes:
        if self.body is None:
            return b""
        return json.dumps(self.body).encode("utf-8")


def error_body(message: str) -> Dict[str, Any]:
    return {"error": {"message": message}}


def _to_wire(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return value


def _serializable(value: Any) -> Any:
    """Wire form of ``value``; raises TypeError/ValueError if it is not JSON."""
    wire = _to_wire(value)
    json.dumps(wire)
    return wire


class ActionEndpoint:
    """Serves one Action over the protocol's HTTP shape.

    Args:
        action: The action to serve.
        headers: Headers added to every response. Defaults to CORS_HEADERS.
    """

    def __init__(self, action: Action, *, headers: Mapping[str, str] | None = None) -> None:
        self._action = action
        self._headers = dict(CORS_HEADERS if headers is None else headers)

    @property
    def action(self) -> Action:
        return self._action

    def _respond(self, status: int, body: Any = None) -> EndpointResponse:
        return EndpointResponse(status=status, body=body, headers=dict(self._headers))

    async def handle(self, method: str, body: Any = None) -> EndpointResponse:
        """Dispatch one HTTP request.

        Args:
            method: HTTP method name (case-insensitive).
            body: Request body for POST: raw bytes/str, or already-parsed JSON.
        """
        verb = method.upper()
        if verb == "GET":
            return self.get()
        if verb == "OPTIONS":
            return self.options()
        if verb == "POST":
            return await self.post(body)
        response = self._respond(405, error_body(f"Method {verb} not allowed"))
        response.headers["Allow"] = ", ".join(ALLOWED_METHODS)
        return response

    def get(self) -> EndpointResponse:
        try:
            body = _serializable(self._action.describe())
        except Exception as exc:
            logger.warning("describe failed: %s", exc)
            return self._respond(500, error_body(str(exc) or "Unknown error"))
        return self._respond(200, body)

    def options(self) -> EndpointResponse:
        return self._respond(200)

    async def post(self, body: Any) -> EndpointResponse:
        if isinstance(body, (bytes, bytearray, str)):
            try:
                payload = json.loads(body)
            except json.JSONDecodeError:
                return self._respond(400, error_body("Request body is not valid JSON"))
        else:
            payload = body

        try:
            result = await self._action.handle_request(payload)
            wire = _serializable(result)
        except RequestValidationError as exc:
            return self._respond(400, error_body(exc.message))
        except Exception as exc:
            logger.warning("action request failed: %s", exc)
            return self._respond(500, error_body(str(exc) or "Unknown error"))

        return self._respond(200, wire)
