"""
Starlette binding for an Action.

    from mlink.adapters.starlette import create_app
    app = create_app(action, path="/api/actions/swap")

Or mount the routes into an existing application with ``create_routes``.
Requires the ``server`` extra (starlette).
"""

from __future__ import annotations

from typing import List, Mapping

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from mlink.action import Action
from mlink.endpoint import ALLOWED_METHODS, ActionEndpoint, EndpointResponse


def _to_response(result: EndpointResponse) -> Response:
    media_type = "application/json" if result.body is not None else None
    return Response(
        content=result.body_bytes(),
        status_code=result.status,
        headers=result.headers,
        media_type=media_type,
    )


def create_routes(
    action: Action,
    path: str = "/",
    *,
    headers: Mapping[str, str] | None = None,
) -> List[Route]:
    """Routes serving ``action`` at ``path`` for GET, POST and OPTIONS."""
    endpoint = ActionEndpoint(action, headers=headers)

    async def serve(request: Request) -> Response:
        body = await request.body() if request.method == "POST" else None
        result = await endpoint.handle(request.method, body)
        return _to_response(result)

    return [Route(path, serve, methods=list(ALLOWED_METHODS))]


def create_app(
    action: Action,
    path: str = "/",
    *,
    headers: Mapping[str, str] | None = None,
) -> Starlette:
    return Starlette(routes=create_routes(action, path, headers=headers))
