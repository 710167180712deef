"""
Tests for the framework-agnostic endpoint.

Test plan:
- GET: 200 metadata with CORS headers
- OPTIONS: 200 empty body
- POST: 200 response body from bytes, str or parsed JSON; 400 on invalid
  JSON or request schema failure; 500 on dispatch or handler failure,
  including handler-raised schema errors and unserializable results
- Other methods: 405 with Allow
- Custom headers replace the CORS defaults
"""

import json
from typing import Any

import pytest

from mlink.builders import ActionDefinition, button, create_action, transaction
from mlink.endpoint import CORS_HEADERS, ActionEndpoint
from mlink.schema import validate_transaction_response
from mlink.transaction import ActionContext, NextActionLink, TransactionResponse

ADDRESS = "0x" + "a" * 40


def _handler(context: ActionContext) -> Any:
    if context.action == "fail":
        raise RuntimeError("boom")
    if context.action == "bad-next":
        return TransactionResponse(
            transaction=transaction(ADDRESS, 1000, "0x", 5003),
            next=NextActionLink(type="inline"),
        )
    if context.action == "bad-json":
        return {"transaction": object()}
    if context.action == "bad-schema":
        return validate_transaction_response({}).unwrap()
    return TransactionResponse(transaction=transaction(ADDRESS, 1000, "0x", 5003), message="Thanks")


def _endpoint(**kwargs: Any) -> ActionEndpoint:
    action = create_action(
        ActionDefinition(
            title="Tip",
            icon="https://example.com/icon.png",
            description="Send a tip",
            handler=_handler,
            actions=[
                button("Tip 1", "tip-1"),
                button("Fail", "fail"),
                button("Bad next", "bad-next"),
                button("Bad JSON", "bad-json"),
                button("Bad schema", "bad-schema"),
            ],
        )
    )
    return ActionEndpoint(action, **kwargs)


def _body(**fields: Any) -> bytes:
    return json.dumps({"account": ADDRESS, **fields}).encode()


class TestGet:
    @pytest.mark.asyncio
    async def test_returns_metadata(self) -> None:
        endpoint = _endpoint()
        response = await endpoint.handle("GET")
        assert response.status == 200
        assert response.body == endpoint.action.describe().to_dict()
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_method_case_insensitive(self) -> None:
        assert (await _endpoint().handle("get")).status == 200


class TestOptions:
    @pytest.mark.asyncio
    async def test_preflight(self) -> None:
        response = await _endpoint().handle("OPTIONS")
        assert response.status == 200
        assert response.body is None
        assert response.body_bytes() == b""
        assert response.headers == CORS_HEADERS


class TestPost:
    @pytest.mark.asyncio
    async def test_success_from_bytes(self) -> None:
        response = await _endpoint().handle("POST", _body(action="tip-1"))
        assert response.status == 200
        assert response.body["message"] == "Thanks"
        assert response.body["transaction"]["chainId"] == 5003

    @pytest.mark.asyncio
    async def test_success_from_parsed(self) -> None:
        response = await _endpoint().post({"account": ADDRESS, "action": "tip-1"})
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_success_from_str(self) -> None:
        response = await _endpoint().post(_body(action="tip-1").decode())
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        response = await _endpoint().handle("POST", b"{not json")
        assert response.status == 400
        assert response.body == {"error": {"message": "Request body is not valid JSON"}}

    @pytest.mark.asyncio
    async def test_schema_failure(self) -> None:
        response = await _endpoint().handle("POST", json.dumps({"account": "0x1", "action": "tip-1"}))
        assert response.status == 400
        assert "Invalid Ethereum address" in response.body["error"]["message"]

    @pytest.mark.asyncio
    async def test_unknown_action(self) -> None:
        response = await _endpoint().handle("POST", _body(action="nope"))
        assert response.status == 500
        assert response.body == {"error": {"message": "Invalid action selected"}}

    @pytest.mark.asyncio
    async def test_handler_failure(self) -> None:
        response = await _endpoint().handle("POST", _body(action="fail"))
        assert response.status == 500
        assert response.body == {"error": {"message": "boom"}}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_schema_error_from_handler_is_500(self) -> None:
        response = await _endpoint().handle("POST", _body(action="bad-schema"))
        assert response.status == 500
        assert response.body == {
            "error": {"message": "Response must include transaction or transactions"}
        }

    @pytest.mark.asyncio
    async def test_newline_account_is_400(self) -> None:
        response = await _endpoint().handle("POST", _body(action="tip-1", account=ADDRESS + "\n"))
        assert response.status == 400
        assert "Invalid Ethereum address" in response.body["error"]["message"]


class TestUnserializableResult:
    @pytest.mark.asyncio
    async def test_inline_next_without_action(self) -> None:
        response = await _endpoint().handle("POST", _body(action="bad-next"))
        assert response.status == 500
        assert response.body == {"error": {"message": "inline next action requires action metadata"}}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_non_json_result(self) -> None:
        response = await _endpoint().handle("POST", _body(action="bad-json"))
        assert response.status == 500
        assert "error" in response.body
        assert response.headers == CORS_HEADERS
        json.loads(response.body_bytes())


class TestOtherMethods:
    @pytest.mark.asyncio
    async def test_put_not_allowed(self) -> None:
        response = await _endpoint().handle("PUT", b"{}")
        assert response.status == 405
        assert response.headers["Allow"] == "GET, POST, OPTIONS"


class TestHeaders:
    @pytest.mark.asyncio
    async def test_custom_headers_replace_defaults(self) -> None:
        response = await _endpoint(headers={"X-Action": "tip"}).handle("GET")
        assert response.headers == {"X-Action": "tip"}
