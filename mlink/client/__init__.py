"""
Consumer side: fetch action metadata, request transactions, sign them.
"""

from mlink.client.config import DEFAULT_CLIENT_CONFIG, ClientConfig
from mlink.client.controller import ActionController, ActionStatus, ExecutionResult
from mlink.client.transport import ActionTransport, HttpxTransport, TransportResponse
from mlink.client.wallet import (
    CallbackWalletAdapter,
    SignerWalletAdapter,
    TransactionSigner,
    WalletAdapter,
    create_wallet_adapter,
)

__all__ = [
    "DEFAULT_CLIENT_CONFIG",
    "ActionController",
    "ActionStatus",
    "ActionTransport",
    "CallbackWalletAdapter",
    "ClientConfig",
    "ExecutionResult",
    "HttpxTransport",
    "SignerWalletAdapter",
    "TransactionSigner",
    "TransportResponse",
    "WalletAdapter",
    "create_wallet_adapter",
]
