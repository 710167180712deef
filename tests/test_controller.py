"""
Tests for ActionController, with a FakeTransport and FakeWallet.

No network: the transport returns canned TransportResponses, the wallet
hands out sequential hashes.

Test plan:
- Loading: ready on valid metadata, error on HTTP status, invalid
  metadata and transport failure; sharable links unwrapped
- Refresh: superseded fetch leaves no error; background refresh during
  success updates metadata only; failed background refresh is quiet;
  timer refreshes and stops on aclose; aclose during a load leaves idle
- Execute: single transaction, input, request shape, wallet connect,
  ordered multi-transaction signing, partial failure keeps first hash,
  transactions preferred over transaction, server error message, status
  fallback, invalid response, wallet failure, sync and async callbacks,
  raising callbacks contained, state guards
- execute_linked: validation errors raised before any request; resolved
  href and data submitted
- Chaining: inline and post next actions; no next action
- reset, explorer_url
"""

import asyncio
from typing import Any

import pytest

from mlink.client.config import ClientConfig
from mlink.client.controller import ActionController, ActionStatus
from mlink.client.transport import TransportResponse
from mlink.errors import ControllerStateError, NetworkError, ParameterValidationError
from mlink.links import create_blink_url
from mlink.metadata import LinkedAction
from mlink.params import ActionParameter
from mlink.schema import NO_TRANSACTION_MESSAGE
from mlink.transaction import EVMTransaction

URL = "https://example.com/api/tip"
ADDRESS = "0x" + "a" * 40
RECIPIENT = "0x" + "b" * 40
NO_TIMER = ClientConfig(refresh_interval_s=None)

# ---------------------------------------------------------------------------
# Canned payloads
# ---------------------------------------------------------------------------


def _metadata(title: str = "Tip") -> dict[str, Any]:
    return {
        "title": title,
        "icon": "https://example.com/icon.png",
        "description": "Send a tip",
        "actions": [
            {"label": "Tip 1", "value": "tip-1", "type": "button"},
            {"label": "Custom", "value": "__input__", "type": "input"},
        ],
    }


def _tx(value: str, chain_id: int = 5003) -> dict[str, Any]:
    return {"to": RECIPIENT, "value": value, "data": "0x", "chainId": chain_id}


def ok(body: Any) -> TransportResponse:
    return TransportResponse(200, "OK", body)


METADATA_OK = ok(_metadata())
SINGLE = ok({"transaction": _tx("1000"), "message": "Thanks!"})
PAIR = ok({"transactions": [_tx("1"), _tx("2")]})


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeTransport:
    """Serves queued responses; the last one repeats. Exceptions are raised."""

    def __init__(self, get: list[Any] | None = None, post: list[Any] | None = None) -> None:
        self.get_queue = list(get or [METADATA_OK])
        self.post_queue = list(post or [SINGLE])
        self.calls: list[tuple[str, str, Any]] = []

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def get_json(self, url: str) -> TransportResponse:
        self.calls.append(("GET", url, None))
        return self._next(self.get_queue)

    async def post_json(self, url: str, payload: dict[str, Any]) -> TransportResponse:
        self.calls.append(("POST", url, payload))
        return self._next(self.post_queue)

    @property
    def posts(self) -> list[tuple[str, Any]]:
        return [(url, payload) for method, url, payload in self.calls if method == "POST"]

    @property
    def get_count(self) -> int:
        return sum(1 for method, _, _ in self.calls if method == "GET")


class GatedTransport(FakeTransport):
    """First GET blocks until released, then answers with a server error."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()
        self._gets = 0

    async def get_json(self, url: str) -> TransportResponse:
        self._gets += 1
        if self._gets == 1:
            await self.release.wait()
            return TransportResponse(500, "Internal Server Error")
        return await super().get_json(url)


class FakeWallet:
    """Hands out sequential hashes; optionally fails at one index."""

    def __init__(self, *, connected: bool = True, fail_at: int | None = None,
                 connect_error: Exception | None = None) -> None:
        self.connected = connected
        self.fail_at = fail_at
        self.connect_error = connect_error
        self.connect_calls = 0
        self.signed: list[EVMTransaction] = []
        self.gate: asyncio.Event | None = None

    async def connect(self) -> str:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        return ADDRESS

    async def sign_and_send_transaction(self, transaction: EVMTransaction) -> str:
        if self.gate is not None:
            await self.gate.wait()
        index = len(self.signed)
        if index == self.fail_at:
            raise RuntimeError("User rejected the request")
        self.signed.append(transaction)
        return f"0x{index + 1:064x}"

    def is_connected(self) -> bool:
        return self.connected

    def get_address(self) -> str | None:
        return ADDRESS if self.connected else None


def hash_of(index: int) -> str:
    return f"0x{index + 1:064x}"


async def _ready(transport: FakeTransport | None = None, wallet: FakeWallet | None = None,
                 **kwargs: Any) -> ActionController:
    controller = ActionController(
        URL, wallet or FakeWallet(), transport=transport or FakeTransport(), config=NO_TIMER, **kwargs
    )
    await controller.start()
    return controller


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoading:
    def test_initial_state(self) -> None:
        controller = ActionController(URL, FakeWallet(), transport=FakeTransport())
        assert controller.status is ActionStatus.IDLE
        assert controller.metadata is None

    @pytest.mark.asyncio
    async def test_ready_on_valid_metadata(self) -> None:
        controller = await _ready()
        assert controller.status is ActionStatus.READY
        assert controller.metadata is not None
        assert controller.metadata.title == "Tip"
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_http_status_error(self) -> None:
        transport = FakeTransport(get=[TransportResponse(404, "Not Found")])
        controller = await _ready(transport)
        assert controller.status is ActionStatus.ERROR
        assert controller.error == "HTTP 404: Not Found"

    @pytest.mark.asyncio
    async def test_invalid_metadata(self) -> None:
        transport = FakeTransport(get=[ok({"title": "Tip"})])
        controller = await _ready(transport)
        assert controller.status is ActionStatus.ERROR
        assert controller.error is not None
        assert controller.error.startswith("Invalid metadata: ")

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        transport = FakeTransport(get=[NetworkError("Failed to connect to https://example.com")])
        controller = await _ready(transport)
        assert controller.status is ActionStatus.ERROR
        assert controller.error == "Failed to connect to https://example.com"

    @pytest.mark.asyncio
    async def test_recovers_on_refresh(self) -> None:
        transport = FakeTransport(get=[TransportResponse(503, "Service Unavailable"), METADATA_OK])
        controller = await _ready(transport)
        assert controller.status is ActionStatus.ERROR
        await controller.refresh()
        assert controller.status is ActionStatus.READY
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_sharable_link_unwrapped(self) -> None:
        transport = FakeTransport()
        controller = ActionController(create_blink_url(URL), FakeWallet(), transport=transport, config=NO_TIMER)
        assert controller.url == URL
        await controller.start()
        assert transport.calls[0] == ("GET", URL, None)


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    @pytest.mark.asyncio
    async def test_superseded_fetch_is_silent(self) -> None:
        transport = GatedTransport()
        controller = ActionController(URL, FakeWallet(), transport=transport, config=NO_TIMER)

        first = asyncio.create_task(controller.refresh())
        for _ in range(3):
            await asyncio.sleep(0)
        await controller.refresh()
        transport.release.set()
        await first

        assert controller.status is ActionStatus.READY
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_background_refresh_keeps_success(self) -> None:
        transport = FakeTransport(get=[METADATA_OK, ok(_metadata("Tip v2"))])
        controller = await _ready(transport)
        await controller.execute("tip-1")
        assert controller.status is ActionStatus.SUCCESS

        await controller.refresh()
        assert controller.status is ActionStatus.SUCCESS
        assert controller.metadata is not None
        assert controller.metadata.title == "Tip v2"
        assert controller.tx_hash == hash_of(0)

    @pytest.mark.asyncio
    async def test_failed_background_refresh_is_quiet(self) -> None:
        transport = FakeTransport(get=[METADATA_OK, TransportResponse(500, "Internal Server Error")])
        controller = await _ready(transport)
        await controller.execute("tip-1")
        await controller.refresh()
        assert controller.status is ActionStatus.SUCCESS
        assert controller.error is None
        assert controller.metadata is not None

    @pytest.mark.asyncio
    async def test_timer_refreshes_until_closed(self) -> None:
        transport = FakeTransport()
        controller = ActionController(
            URL, FakeWallet(), transport=transport, config=ClientConfig(refresh_interval_s=0.01)
        )
        async with controller:
            for _ in range(100):
                if transport.get_count >= 3:
                    break
                await asyncio.sleep(0.01)
            assert transport.get_count >= 3
        count = transport.get_count
        await asyncio.sleep(0.05)
        assert transport.get_count == count

    @pytest.mark.asyncio
    async def test_aclose_abandons_load(self) -> None:
        transport = GatedTransport()
        controller = ActionController(URL, FakeWallet(), transport=transport, config=NO_TIMER)

        first = asyncio.create_task(controller.refresh())
        for _ in range(3):
            await asyncio.sleep(0)
        assert controller.status is ActionStatus.LOADING
        await controller.aclose()
        await first

        assert controller.status is ActionStatus.IDLE
        assert controller.error is None


# ---------------------------------------------------------------------------
# Execute
# ---------------------------------------------------------------------------


class TestExecute:
    @pytest.mark.asyncio
    async def test_single_transaction(self) -> None:
        transport = FakeTransport()
        wallet = FakeWallet()
        controller = await _ready(transport, wallet)

        result = await controller.execute("tip-1")

        assert result.success is True
        assert result.tx_hash == hash_of(0)
        assert result.message == "Thanks!"
        assert controller.status is ActionStatus.SUCCESS
        assert controller.message == "Thanks!"
        assert transport.posts == [(URL, {"account": ADDRESS, "action": "tip-1"})]
        assert wallet.signed == [EVMTransaction(RECIPIENT, "1000", "0x", 5003)]

    @pytest.mark.asyncio
    async def test_input_sent(self) -> None:
        transport = FakeTransport()
        controller = await _ready(transport)
        await controller.execute("__input__", input="2.5")
        assert transport.posts[0][1] == {"account": ADDRESS, "action": "__input__", "input": "2.5"}

    @pytest.mark.asyncio
    async def test_connects_wallet_when_needed(self) -> None:
        wallet = FakeWallet(connected=False)
        controller = await _ready(wallet=wallet)
        await controller.execute("tip-1")
        assert wallet.connect_calls == 1
        assert controller.account == ADDRESS

    @pytest.mark.asyncio
    async def test_signs_in_order(self) -> None:
        wallet = FakeWallet()
        controller = await _ready(FakeTransport(post=[PAIR]), wallet)

        result = await controller.execute("tip-1")

        assert [tx.value for tx in wallet.signed] == ["1", "2"]
        assert result.tx_hashes == (hash_of(0), hash_of(1))
        assert controller.tx_hash == hash_of(1)

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_first_hash(self) -> None:
        errors: list[str] = []
        wallet = FakeWallet(fail_at=1)
        controller = await _ready(FakeTransport(post=[PAIR]), wallet, on_error=errors.append)

        result = await controller.execute("tip-1")

        assert result.success is False
        assert result.error == "User rejected the request"
        assert result.tx_hashes == (hash_of(0),)
        assert controller.tx_hash == hash_of(0)
        assert controller.status is ActionStatus.ERROR
        assert errors == ["User rejected the request"]

    @pytest.mark.asyncio
    async def test_transactions_preferred(self) -> None:
        wallet = FakeWallet()
        response = ok({"transaction": _tx("999"), "transactions": [_tx("1"), _tx("2")]})
        controller = await _ready(FakeTransport(post=[response]), wallet)
        await controller.execute("tip-1")
        assert [tx.value for tx in wallet.signed] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_server_error_message(self) -> None:
        response = TransportResponse(400, "Bad Request", {"error": {"message": "Insufficient balance"}})
        controller = await _ready(FakeTransport(post=[response]))
        result = await controller.execute("tip-1")
        assert result.error == "Insufficient balance"
        assert controller.error == "Insufficient balance"

    @pytest.mark.asyncio
    async def test_server_plain_message(self) -> None:
        response = TransportResponse(400, "Bad Request", {"message": "Try later"})
        controller = await _ready(FakeTransport(post=[response]))
        assert (await controller.execute("tip-1")).error == "Try later"

    @pytest.mark.asyncio
    async def test_status_fallback(self) -> None:
        controller = await _ready(FakeTransport(post=[TransportResponse(500, "Internal Server Error")]))
        assert (await controller.execute("tip-1")).error == "HTTP 500: Internal Server Error"

    @pytest.mark.asyncio
    async def test_invalid_response(self) -> None:
        wallet = FakeWallet()
        controller = await _ready(FakeTransport(post=[ok({"message": "nothing"})]), wallet)
        result = await controller.execute("tip-1")
        assert result.error == f"Invalid response: {NO_TRANSACTION_MESSAGE}"
        assert wallet.signed == []

    @pytest.mark.asyncio
    async def test_wallet_connect_failure(self) -> None:
        transport = FakeTransport()
        wallet = FakeWallet(connected=False, connect_error=RuntimeError("User closed the modal"))
        controller = await _ready(transport, wallet)
        result = await controller.execute("tip-1")
        assert result.error == "User closed the modal"
        assert controller.status is ActionStatus.ERROR
        assert transport.posts == []

    @pytest.mark.asyncio
    async def test_success_callback(self) -> None:
        calls: list[tuple[str, str]] = []
        controller = await _ready(on_success=lambda tx_hash, action: calls.append((tx_hash, action)))
        await controller.execute("tip-1")
        assert calls == [(hash_of(0), "tip-1")]

    @pytest.mark.asyncio
    async def test_async_callbacks_awaited(self) -> None:
        calls: list[str] = []

        async def on_success(tx_hash: str, action: str) -> None:
            await asyncio.sleep(0)
            calls.append(f"success:{action}")

        async def on_error(message: str) -> None:
            await asyncio.sleep(0)
            calls.append(f"error:{message}")

        transport = FakeTransport(post=[SINGLE, TransportResponse(500, "Internal Server Error")])
        controller = await _ready(transport, on_success=on_success, on_error=on_error)
        await controller.execute("tip-1")
        controller.reset()
        await controller.execute("tip-1")
        assert calls == ["success:tip-1", "error:HTTP 500: Internal Server Error"]

    @pytest.mark.asyncio
    async def test_raising_error_callback_contained(self) -> None:
        def on_error(message: str) -> None:
            raise RuntimeError("callback broke")

        controller = await _ready(FakeTransport(post=[ok({"message": "nothing"})]), on_error=on_error)
        result = await controller.execute("tip-1")
        assert result.success is False
        assert result.error == f"Invalid response: {NO_TRANSACTION_MESSAGE}"
        assert controller.status is ActionStatus.ERROR

    @pytest.mark.asyncio
    async def test_requires_metadata(self) -> None:
        controller = ActionController(URL, FakeWallet(), transport=FakeTransport(), config=NO_TIMER)
        with pytest.raises(ControllerStateError):
            await controller.execute("tip-1")

    @pytest.mark.asyncio
    async def test_single_flight(self) -> None:
        wallet = FakeWallet()
        wallet.gate = asyncio.Event()
        controller = await _ready(wallet=wallet)

        first = asyncio.create_task(controller.execute("tip-1"))
        for _ in range(5):
            await asyncio.sleep(0)
        assert controller.status is ActionStatus.EXECUTING
        with pytest.raises(ControllerStateError):
            await controller.execute("tip-1")

        wallet.gate.set()
        result = await first
        assert result.success is True

    @pytest.mark.asyncio
    async def test_rerun_after_error_clears_state(self) -> None:
        transport = FakeTransport(post=[TransportResponse(500, "Internal Server Error"), SINGLE])
        controller = await _ready(transport)
        await controller.execute("tip-1")
        result = await controller.execute("tip-1")
        assert result.success is True
        assert controller.error is None


# ---------------------------------------------------------------------------
# Linked actions
# ---------------------------------------------------------------------------


SEND = LinkedAction(
    href="/api/send?to={to}&amount={amount}",
    label="Send",
    parameters=(
        ActionParameter(name="to", type="address", label="Recipient", required=True),
        ActionParameter(name="amount", type="amount", label="Amount", required=True, min="0.01"),
    ),
)


class TestExecuteLinked:
    @pytest.mark.asyncio
    async def test_invalid_values_raise_before_request(self) -> None:
        transport = FakeTransport()
        controller = await _ready(transport)
        with pytest.raises(ParameterValidationError) as exc_info:
            await controller.execute_linked(SEND, {"to": "0x1", "amount": ""})
        assert exc_info.value.errors == ["Recipient must be a valid address", "Amount is required"]
        assert controller.status is ActionStatus.READY
        assert transport.posts == []

    @pytest.mark.asyncio
    async def test_submits_resolved_href(self) -> None:
        transport = FakeTransport()
        controller = await _ready(transport)
        values = {"to": RECIPIENT, "amount": "1.5"}
        result = await controller.execute_linked(SEND, values)
        assert result.success is True
        assert transport.posts == [
            (
                URL,
                {
                    "account": ADDRESS,
                    "action": f"/api/send?to={RECIPIENT}&amount=1.5",
                    "data": values,
                },
            )
        ]


# ---------------------------------------------------------------------------
# Chaining, reset
# ---------------------------------------------------------------------------


class TestChaining:
    @pytest.mark.asyncio
    async def test_inline_next(self) -> None:
        response = ok({"transaction": _tx("1"), "links": {"next": {"type": "inline", "action": _metadata("Done")}}})
        controller = await _ready(FakeTransport(post=[response]))
        result = await controller.execute("tip-1")
        assert result.next is not None
        assert result.next.type == "inline"

        metadata = await controller.follow_next()

        assert metadata.title == "Done"
        assert controller.metadata == metadata
        assert controller.status is ActionStatus.READY
        assert controller.next_action is None

    @pytest.mark.asyncio
    async def test_post_next(self) -> None:
        response = ok({"transaction": _tx("1"), "links": {"next": {"type": "post", "href": "/api/next"}}})
        transport = FakeTransport(post=[response, ok(_metadata("Step 2"))])
        controller = await _ready(transport)
        await controller.execute("tip-1")

        metadata = await controller.follow_next()

        assert metadata.title == "Step 2"
        assert transport.posts[-1] == (
            "https://example.com/api/next",
            {"account": ADDRESS, "signature": hash_of(0)},
        )
        assert controller.status is ActionStatus.READY

    @pytest.mark.asyncio
    async def test_post_next_failure_raises(self) -> None:
        response = ok({"transaction": _tx("1"), "links": {"next": {"type": "post", "href": "/api/next"}}})
        transport = FakeTransport(post=[response, TransportResponse(500, "Internal Server Error")])
        controller = await _ready(transport)
        await controller.execute("tip-1")
        with pytest.raises(NetworkError, match="HTTP 500"):
            await controller.follow_next()
        assert controller.status is ActionStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_no_next(self) -> None:
        controller = await _ready()
        await controller.execute("tip-1")
        with pytest.raises(ControllerStateError):
            await controller.follow_next()


class TestReset:
    @pytest.mark.asyncio
    async def test_success_to_ready(self) -> None:
        controller = await _ready()
        await controller.execute("tip-1")
        controller.reset()
        assert controller.status is ActionStatus.READY
        assert controller.tx_hash is None
        assert controller.message is None

    @pytest.mark.asyncio
    async def test_error_to_ready(self) -> None:
        controller = await _ready(FakeTransport(post=[TransportResponse(500, "Internal Server Error")]))
        await controller.execute("tip-1")
        controller.reset()
        assert controller.status is ActionStatus.READY
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_ready_unchanged(self) -> None:
        controller = await _ready()
        controller.reset()
        assert controller.status is ActionStatus.READY


class TestExplorerUrl:
    @pytest.mark.asyncio
    async def test_uses_transaction_chain(self) -> None:
        controller = await _ready(FakeTransport(post=[ok({"transaction": _tx("1", chain_id=5000)})]))
        assert controller.explorer_url() == ""
        await controller.execute("tip-1")
        assert controller.explorer_url() == f"https://mantlescan.xyz/tx/{hash_of(0)}"

    @pytest.mark.asyncio
    async def test_unknown_chain_falls_back_to_default(self) -> None:
        controller = await _ready(FakeTransport(post=[ok({"transaction": _tx("1", chain_id=1)})]))
        await controller.execute("tip-1")
        assert controller.explorer_url() == f"https://sepolia.mantlescan.xyz/tx/{hash_of(0)}"
