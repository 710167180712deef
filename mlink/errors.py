"""
Error taxonomy for the action protocol.

Every error carries a machine-readable ``error_code`` and an optional
``details`` dict for diagnostics, so wire glue and clients can map
failures without parsing messages.

Categories:
    - SchemaValidationError: a wire message or definition has the wrong shape.
      RequestValidationError narrows it to an inbound request.
    - DefinitionError: an action definition is malformed at construction time.
    - ParameterValidationError: user-entered values fail local checks.
      Always carries the complete list of violations.
    - RequestDispatchError: the request names no known action, or lacks
      a required input.
    - NetworkError: transport or HTTP status failure.
    - NoTransactionError: a valid response that yields zero transactions.
    - WalletError: the wallet adapter could not connect or sign.
    - ControllerStateError: the client state machine was driven out of order.
"""

from __future__ import annotations

from typing import Any, Dict, List


class MlinkError(Exception):
    """Base class for all protocol errors."""

    error_code = "MLINK_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.details: Dict[str, Any] = details or {}


class SchemaValidationError(MlinkError):
    """A wire message or definition failed structural/semantic validation."""

    error_code = "SCHEMA_INVALID"


class RequestValidationError(SchemaValidationError):
    """An inbound transaction request failed validation.

    Raised only by the runtime's own request check, so wire glue can tell
    a bad request apart from a handler that produced an invalid value.
    """

    error_code = "REQUEST_INVALID"


# Name used by the request path of the runtime.
ValidationError = RequestValidationError


class DefinitionError(MlinkError):
    """An action definition was rejected at construction time."""

    error_code = "DEFINITION_INVALID"


class ParameterValidationError(MlinkError):
    """User-entered parameter values failed validation.

    Attributes:
        errors: Every violation found, in parameter order.
    """

    error_code = "PARAMETER_INVALID"

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors), details={"errors": list(errors)})
        self.errors = list(errors)


class RequestDispatchError(MlinkError):
    """The request could not be routed to an action entry."""

    error_code = "DISPATCH_FAILED"


class UnknownActionError(RequestDispatchError):
    error_code = "UNKNOWN_ACTION"


class MissingInputError(RequestDispatchError):
    error_code = "MISSING_INPUT"


class NetworkError(MlinkError):
    """Transport failure or non-success HTTP status."""

    error_code = "NETWORK_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)
        self.status_code = status_code


class NoTransactionError(MlinkError):
    error_code = "NO_TRANSACTION"


class WalletError(MlinkError):
    error_code = "WALLET_ERROR"


class ControllerStateError(MlinkError):
    error_code = "INVALID_STATE"
