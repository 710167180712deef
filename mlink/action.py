"""
Action runtime: the producer side of the protocol.

An Action answers two questions:

    - ``describe()``: pure. Returns the configured ActionMetadata.
    - ``handle_request()``: validates the request, resolves which entry
      was chosen, and hands an ActionContext to the user's handler.

The runtime holds no state between calls. The handler's result is
returned unchanged: outbound responses are validated by the consumer,
not here.

Dispatch rules:
    - No legacy ``actions``: the request goes straight to the handler.
    - Legacy ``actions`` present: ``request.action`` must equal a button
      value, or be ``__input__`` with an input entry present (which then
      requires ``request.input``). When linked actions are also offered,
      a request naming a linked action's href (as a template, or resolved
      with ``request.data``) is accepted too.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Mapping

from mlink.builders import ActionDefinition, validate_definition
from mlink.errors import MissingInputError, RequestValidationError, UnknownActionError
from mlink.metadata import INPUT_ACTION_VALUE, ActionButton, ActionMetadata
from mlink.schema import validate_transaction_request
from mlink.template import build_href
from mlink.transaction import ActionContext, TransactionRequest, TransactionResponse

logger = logging.getLogger(__name__)


class Action:
    """A validated action definition ready to serve requests."""

    def __init__(self, definition: ActionDefinition) -> None:
        self._metadata = validate_definition(definition)
        self._definition = definition

    @property
    def definition(self) -> ActionDefinition:
        return self._definition

    def describe(self) -> ActionMetadata:
        """The action's metadata, exactly as configured."""
        return self._metadata

    async def handle_request(
        self, request: TransactionRequest | Mapping[str, Any]
    ) -> TransactionResponse | Mapping[str, Any]:
        """Validate and dispatch one transaction request.

        Args:
            request: A TransactionRequest or its wire dict.

        Returns:
            Whatever the handler returned.

        Raises:
            RequestValidationError: The request is malformed.
            UnknownActionError: No legacy entry matches ``request.action``.
            MissingInputError: An input entry was chosen without input.
            Exception: Anything the handler raises, unchanged.
        """
        checked = validate_transaction_request(request)
        if not checked.success:
            raise RequestValidationError(
                checked.error or "Invalid transaction request",
                details={"errors": list(checked.errors)},
            )
        parsed: TransactionRequest = checked.data  # type: ignore[assignment]

        if self._metadata.legacy_actions:
            selected = self._select_legacy(parsed)
            if selected is not None and selected.is_input and not parsed.input:
                raise MissingInputError("Input value is required")

        context = ActionContext(
            account=parsed.account,
            action=parsed.action,
            input=parsed.input,
            data=parsed.data,
        )
        logger.debug("dispatching action %r", parsed.action)

        result = self._definition.handler(context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _select_legacy(self, request: TransactionRequest) -> ActionButton | None:
        """Find the chosen legacy entry.

        Returns None when the request names a linked action instead.
        """
        for entry in self._metadata.legacy_actions:
            if entry.value == request.action:
                return entry
            if entry.is_input and request.action == INPUT_ACTION_VALUE:
                return entry

        for linked in self._metadata.linked_actions:
            if request.action == linked.href:
                return None
            if request.data and request.action == build_href(linked.href, request.data):
                return None

        raise UnknownActionError(
            "Invalid action selected",
            details={"action": request.action},
        )
