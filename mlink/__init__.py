"""
mlink: shareable blockchain actions over HTTP.

A producer publishes an action (metadata via GET, transactions via POST);
a consumer fetches the metadata, collects user input, requests the
transactions and hands them to a wallet for signing.

Server framework bindings live in mlink.adapters and need the ``server``
extra.
"""

__version__ = "0.1.0"

from mlink.action import Action
from mlink.builders import (
    ActionDefinition,
    ActionHandler,
    button,
    create_action,
    input_action,
    linked_action,
    next_inline,
    next_post,
    option,
    parameter,
    select_parameter,
    transaction,
    validate_definition,
)
from mlink.chains import (
    DEFAULT_CHAIN,
    MANTLE_MAINNET,
    MANTLE_SEPOLIA,
    SUPPORTED_CHAINS,
    ChainConfig,
    get_address_explorer_url,
    get_chain_by_id,
    get_explorer_url,
)
from mlink.client import (
    ActionController,
    ActionStatus,
    ClientConfig,
    ExecutionResult,
    HttpxTransport,
    WalletAdapter,
    create_wallet_adapter,
)
from mlink.endpoint import ActionEndpoint, EndpointResponse
from mlink.errors import (
    ControllerStateError,
    DefinitionError,
    MissingInputError,
    MlinkError,
    NetworkError,
    NoTransactionError,
    ParameterValidationError,
    RequestDispatchError,
    RequestValidationError,
    SchemaValidationError,
    UnknownActionError,
    ValidationError,
    WalletError,
)
from mlink.links import create_blink_url, is_blink_url, parse_blink_url
from mlink.metadata import (
    INPUT_ACTION_VALUE,
    ActionButton,
    ActionLinks,
    ActionMetadata,
    LinkedAction,
)
from mlink.params import ActionParameter, ParameterOption, is_selectable_param
from mlink.schema import (
    ValidationResult,
    check_parameter_values,
    is_valid_address,
    is_valid_hex,
    validate_action_metadata,
    validate_evm_transaction,
    validate_linked_action,
    validate_parameter,
    validate_parameter_values,
    validate_transaction_request,
    validate_transaction_response,
)
from mlink.template import build_href, extract_params
from mlink.transaction import (
    ActionContext,
    EVMTransaction,
    NextActionLink,
    TransactionRequest,
    TransactionResponse,
)
from mlink.units import format_ether, parse_ether, shorten_address

__all__ = [
    "DEFAULT_CHAIN",
    "INPUT_ACTION_VALUE",
    "MANTLE_MAINNET",
    "MANTLE_SEPOLIA",
    "SUPPORTED_CHAINS",
    "Action",
    "ActionButton",
    "ActionContext",
    "ActionController",
    "ActionDefinition",
    "ActionEndpoint",
    "ActionHandler",
    "ActionLinks",
    "ActionMetadata",
    "ActionParameter",
    "ActionStatus",
    "ChainConfig",
    "ClientConfig",
    "ControllerStateError",
    "DefinitionError",
    "EVMTransaction",
    "EndpointResponse",
    "ExecutionResult",
    "HttpxTransport",
    "LinkedAction",
    "MissingInputError",
    "MlinkError",
    "NetworkError",
    "NextActionLink",
    "NoTransactionError",
    "ParameterOption",
    "ParameterValidationError",
    "RequestDispatchError",
    "RequestValidationError",
    "SchemaValidationError",
    "TransactionRequest",
    "TransactionResponse",
    "UnknownActionError",
    "ValidationError",
    "ValidationResult",
    "WalletAdapter",
    "WalletError",
    "build_href",
    "button",
    "check_parameter_values",
    "create_action",
    "create_blink_url",
    "create_wallet_adapter",
    "extract_params",
    "format_ether",
    "get_address_explorer_url",
    "get_chain_by_id",
    "get_explorer_url",
    "input_action",
    "is_blink_url",
    "is_selectable_param",
    "is_valid_address",
    "is_valid_hex",
    "linked_action",
    "next_inline",
    "next_post",
    "option",
    "parameter",
    "parse_blink_url",
    "parse_ether",
    "select_parameter",
    "shorten_address",
    "transaction",
    "validate_action_metadata",
    "validate_definition",
    "validate_evm_transaction",
    "validate_linked_action",
    "validate_parameter",
    "validate_parameter_values",
    "validate_transaction_request",
    "validate_transaction_response",
]
