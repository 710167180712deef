"""
Client-side action controller.

Drives one action URL through its lifecycle:

    idle -> loading -> ready -> executing -> success | error

and back to ready via reset(). Metadata is fetched on start() and then
refreshed on a timer; a newer fetch supersedes (cancels) an older one.

Invariants:
    - At most one execution is in flight per controller.
    - Transactions from one response are signed strictly in order; each
      hash is recorded before the next signing starts.
    - A superseded fetch never changes status or error.
    - A background refresh during or after an execution updates metadata
      only; it never overwrites executing/success/error.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, List, Mapping
from urllib.parse import urljoin

from mlink.chains import get_chain_by_id
from mlink.client.config import DEFAULT_CLIENT_CONFIG, ClientConfig
from mlink.client.transport import ActionTransport, HttpxTransport, TransportResponse
from mlink.client.wallet import WalletAdapter
from mlink.errors import (
    ControllerStateError,
    NetworkError,
    NoTransactionError,
    SchemaValidationError,
    WalletError,
)
from mlink.links import parse_blink_url
from mlink.metadata import ActionMetadata, LinkedAction
from mlink.schema import (
    check_parameter_values,
    validate_action_metadata,
    validate_transaction_response,
)
from mlink.template import build_href
from mlink.transaction import (
    NEXT_ACTION_INLINE,
    EVMTransaction,
    NextActionLink,
    ParameterValue,
    TransactionRequest,
)

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[str, str], Any]
ErrorCallback = Callable[[str], Any]

_LOAD = "load"
_EXECUTE = "execute"


class ActionStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one execute() call.

    On failure ``tx_hashes`` still lists every transaction that was
    broadcast before the failure.
    """

    success: bool
    tx_hash: str | None = None
    tx_hashes: tuple[str, ...] = ()
    message: str | None = None
    error: str | None = None
    next: NextActionLink | None = None


def _error_message(exc: BaseException, fallback: str) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or fallback


def _status_message(response: TransportResponse) -> str:
    """Server-supplied error text, else ``HTTP <status>: <reason>``."""
    body = response.body
    if isinstance(body, Mapping):
        error = body.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(body.get("message"), str):
            return body["message"]
    return f"HTTP {response.status_code}: {response.reason}"


class ActionController:
    """State machine for fetching and executing one action.

    Args:
        url: Action URL, or a sharable link wrapping one.
        adapter: Wallet adapter used to resolve the account and sign.
        transport: HTTP transport; defaults to HttpxTransport built from config.
        config: Client configuration; defaults to DEFAULT_CLIENT_CONFIG.
        on_success: Called with (last tx hash, action) after a full success.
        on_error: Called with the error message after a failed execution.
            Either callback may be async; exceptions they raise are logged.

    Usage:
        async with ActionController(url, wallet) as controller:
            result = await controller.execute("tip-1")
    """

    def __init__(
        self,
        url: str,
        adapter: WalletAdapter,
        *,
        transport: ActionTransport | None = None,
        config: ClientConfig | None = None,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._config = config or DEFAULT_CLIENT_CONFIG
        self._url = parse_blink_url(url) or url
        self._adapter = adapter
        self._transport = transport or HttpxTransport(
            timeout=self._config.timeout_s, headers=self._config.headers
        )
        self._on_success = on_success
        self._on_error = on_error

        self._status = ActionStatus.IDLE
        self._metadata: ActionMetadata | None = None
        self._error: str | None = None
        self._error_source: str | None = None
        self._tx_hash: str | None = None
        self._tx_hashes: List[str] = []
        self._transactions: List[EVMTransaction] = []
        self._message: str | None = None
        self._next: NextActionLink | None = None
        self._account: str | None = None

        self._fetch_task: asyncio.Task[None] | None = None
        self._refresh_task: asyncio.Task[None] | None = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def url(self) -> str:
        return self._url

    @property
    def status(self) -> ActionStatus:
        return self._status

    @property
    def metadata(self) -> ActionMetadata | None:
        return self._metadata

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def tx_hash(self) -> str | None:
        """Hash of the most recently broadcast transaction."""
        return self._tx_hash

    @property
    def tx_hashes(self) -> tuple[str, ...]:
        return tuple(self._tx_hashes)

    @property
    def message(self) -> str | None:
        return self._message

    @property
    def next_action(self) -> NextActionLink | None:
        return self._next

    @property
    def account(self) -> str | None:
        return self._account

    @property
    def is_loading(self) -> bool:
        return self._status is ActionStatus.LOADING

    @property
    def is_executing(self) -> bool:
        return self._status is ActionStatus.EXECUTING

    def explorer_url(self) -> str:
        """Explorer link for the last broadcast transaction, or ""."""
        if self._tx_hash is None:
            return ""
        chain = self._config.default_chain
        if self._transactions:
            chain = get_chain_by_id(self._transactions[-1].chain_id) or chain
        return f"{chain.explorer_url}/tx/{self._tx_hash}"

    def _set_status(self, status: ActionStatus) -> None:
        if status is not self._status:
            logger.debug("%s: %s -> %s", self._url, self._status, status)
        self._status = status

    def _is_execution_phase(self) -> bool:
        if self._status in (ActionStatus.EXECUTING, ActionStatus.SUCCESS):
            return True
        return self._status is ActionStatus.ERROR and self._error_source == _EXECUTE

    async def _notify(self, callback: Callable[..., Any], *args: Any) -> None:
        """Run a user callback, sync or async. Its failures are logged, not raised."""
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            name = getattr(callback, "__name__", "user")
            logger.exception("%s: %s callback failed", self._url, name)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Fetch metadata once, then keep refreshing on the configured interval."""
        if self._refresh_task is not None:
            return
        await self.refresh()
        interval = self._config.refresh_interval_s
        if interval:
            self._refresh_task = asyncio.create_task(self._refresh_loop(interval))

    async def _refresh_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.refresh()

    async def aclose(self) -> None:
        """Stop the refresh timer and abandon any in-flight fetch.

        An abandoned load leaves ``ready`` if metadata was loaded before,
        otherwise ``idle``.
        """
        tasks = [t for t in (self._refresh_task, self._fetch_task) if t is not None]
        self._refresh_task = None
        self._fetch_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._status is ActionStatus.LOADING:
            self._set_status(ActionStatus.READY if self._metadata is not None else ActionStatus.IDLE)

    async def __aenter__(self) -> ActionController:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # =========================================================================
    # Metadata
    # =========================================================================

    async def refresh(self) -> None:
        """Fetch metadata, superseding any fetch still in flight.

        Load failures land in ``error``/``status``; they are not raised.
        """
        previous = self._fetch_task
        if previous is not None and not previous.done():
            previous.cancel()

        if not self._is_execution_phase():
            self._error = None
            self._error_source = None
            self._set_status(ActionStatus.LOADING)

        task = asyncio.ensure_future(self._fetch_metadata())
        self._fetch_task = task
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if self._fetch_task is not task and not (current and current.cancelling()):
                logger.debug("%s: metadata fetch superseded", self._url)
                return
            raise
        finally:
            if self._fetch_task is task:
                self._fetch_task = None

    async def _fetch_metadata(self) -> None:
        try:
            response = await self._transport.get_json(self._url)
            if not response.ok:
                raise NetworkError(
                    f"HTTP {response.status_code}: {response.reason}",
                    status_code=response.status_code,
                )
            result = validate_action_metadata(response.body)
            if not result.success:
                raise SchemaValidationError(f"Invalid metadata: {result.error}")
        except Exception as exc:
            message = _error_message(exc, "Failed to fetch action")
            if self._status is not ActionStatus.LOADING:
                logger.warning("%s: background refresh failed: %s", self._url, message)
                return
            logger.warning("%s: metadata fetch failed: %s", self._url, message)
            self._error = message
            self._error_source = _LOAD
            self._set_status(ActionStatus.ERROR)
            return

        self._metadata = result.data
        if self._status is ActionStatus.LOADING:
            self._set_status(ActionStatus.READY)

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute(
        self,
        action: str,
        input: str | None = None,
        data: Mapping[str, ParameterValue] | None = None,
    ) -> ExecutionResult:
        """Request transactions for ``action`` and sign them in order.

        Args:
            action: Button value or resolved linked-action href.
            input: Free-text value for input buttons.
            data: Parameter values for linked actions.

        Returns:
            ExecutionResult; failures are reported here and in ``error``,
            and ``on_error`` is invoked.

        Raises:
            ControllerStateError: If an execution is already in flight or
                metadata has not been loaded.
        """
        if self._status is ActionStatus.EXECUTING:
            raise ControllerStateError("An execution is already in progress")
        if self._metadata is None:
            raise ControllerStateError("Action metadata is not loaded")

        self._error = None
        self._error_source = None
        self._tx_hash = None
        self._tx_hashes = []
        self._transactions = []
        self._message = None
        self._next = None
        self._set_status(ActionStatus.EXECUTING)

        try:
            account = await self._resolve_account()
            request = TransactionRequest(
                account=account,
                action=action,
                input=input,
                data=dict(data) if data is not None else None,
            )
            response = await self._transport.post_json(self._url, request.to_dict())
            if not response.ok:
                raise NetworkError(_status_message(response), status_code=response.status_code)

            result = validate_transaction_response(response.body)
            if not result.success:
                raise SchemaValidationError(f"Invalid response: {result.error}")
            tx_response = result.unwrap()

            transactions = tx_response.all_transactions()
            if not transactions:
                raise NoTransactionError("No transactions to sign")

            for tx in transactions:
                tx_hash = await self._adapter.sign_and_send_transaction(tx)
                self._tx_hash = tx_hash
                self._tx_hashes.append(tx_hash)
                self._transactions.append(tx)
                logger.info("%s: broadcast %s (%d/%d)", self._url, tx_hash,
                            len(self._tx_hashes), len(transactions))
        except Exception as exc:
            message = _error_message(exc, "Transaction failed")
            logger.warning("%s: execution of %r failed: %s", self._url, action, message)
            self._error = message
            self._error_source = _EXECUTE
            self._set_status(ActionStatus.ERROR)
            if self._on_error is not None:
                await self._notify(self._on_error, message)
            return ExecutionResult(
                success=False,
                tx_hash=self._tx_hash,
                tx_hashes=tuple(self._tx_hashes),
                error=message,
            )

        self._message = tx_response.message
        self._next = tx_response.next
        self._set_status(ActionStatus.SUCCESS)
        if self._on_success is not None:
            await self._notify(self._on_success, self._tx_hash, action)
        return ExecutionResult(
            success=True,
            tx_hash=self._tx_hash,
            tx_hashes=tuple(self._tx_hashes),
            message=self._message,
            next=self._next,
        )

    async def execute_linked(
        self,
        linked_action: LinkedAction,
        values: Mapping[str, ParameterValue] | None = None,
    ) -> ExecutionResult:
        """Validate ``values``, resolve the href template, and execute it.

        Raises:
            ParameterValidationError: With every violation, before any
                state change or network call.
        """
        values = dict(values or {})
        check_parameter_values(linked_action.parameters or (), values)
        href = build_href(linked_action.href, values)
        return await self.execute(href, data=values or None)

    async def _resolve_account(self) -> str:
        address = self._adapter.get_address()
        if not self._adapter.is_connected() or not address:
            try:
                address = await self._adapter.connect()
            except WalletError:
                raise
            except Exception as exc:
                raise WalletError(_error_message(exc, "Failed to connect wallet")) from exc
        if not address:
            raise WalletError("Failed to connect wallet")
        self._account = address
        return address

    # =========================================================================
    # Chaining
    # =========================================================================

    async def follow_next(self) -> ActionMetadata:
        """Move to the next action advertised by the last successful response.

        Inline links carry the metadata directly. Post links are resolved
        against the action URL and POSTed ``{account, signature}``; the
        response must be valid metadata.

        Raises:
            ControllerStateError: If there is no next action.
            NetworkError: On a non-success status from the callback.
            SchemaValidationError: If the callback returns invalid metadata.
        """
        link = self._next
        if link is None:
            raise ControllerStateError("No next action to follow")

        if link.type == NEXT_ACTION_INLINE and link.action is not None:
            metadata = link.action
        else:
            callback_url = urljoin(self._url, link.href or "")
            response = await self._transport.post_json(
                callback_url, {"account": self._account, "signature": self._tx_hash}
            )
            if not response.ok:
                raise NetworkError(_status_message(response), status_code=response.status_code)
            result = validate_action_metadata(response.body)
            if not result.success:
                raise SchemaValidationError(f"Invalid metadata: {result.error}")
            metadata = result.unwrap()

        self._metadata = metadata
        self._clear_execution()
        self._set_status(ActionStatus.READY)
        return metadata

    def reset(self) -> None:
        """Return from success/error to ready without refetching."""
        if self._status not in (ActionStatus.SUCCESS, ActionStatus.ERROR):
            return
        self._clear_execution()
        self._error = None
        self._error_source = None
        self._set_status(ActionStatus.READY if self._metadata is not None else ActionStatus.IDLE)

    def _clear_execution(self) -> None:
        self._tx_hash = None
        self._tx_hashes = []
        self._transactions = []
        self._message = None
        self._next = None
