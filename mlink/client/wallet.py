"""
Wallet adapter protocol: the signing boundary.

The controller never sees keys. It asks the adapter for an account and
hands it one EVMTransaction at a time; the adapter signs, broadcasts and
returns the transaction hash.

Concrete implementations:
    - CallbackWalletAdapter (plain callables, sync or async)
    - SignerWalletAdapter (an ethers-style signer object)
    - FakeWallet (tests)
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, Protocol, Union, runtime_checkable

from mlink.errors import WalletError
from mlink.transaction import EVMTransaction

MaybeAwaitable = Union[Any, Awaitable[Any]]


@runtime_checkable
class WalletAdapter(Protocol):
    """Interface for account resolution and transaction signing."""

    async def connect(self) -> str:
        """Connect the wallet and return the account address.

        May block on user interaction in a host UI.

        Raises:
            Exception: If the user declines or the wallet is unavailable.
        """
        ...

    async def sign_and_send_transaction(self, transaction: EVMTransaction) -> str:
        """Sign and broadcast one transaction; return its hash."""
        ...

    def is_connected(self) -> bool:
        ...

    def get_address(self) -> str | None:
        ...


async def _resolve(value: MaybeAwaitable) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class CallbackWalletAdapter:
    """WalletAdapter built from four callables.

    ``connect`` and ``sign_and_send_transaction`` may be sync or async.
    """

    def __init__(
        self,
        *,
        connect: Callable[[], MaybeAwaitable],
        sign_and_send_transaction: Callable[[EVMTransaction], MaybeAwaitable],
        is_connected: Callable[[], bool],
        get_address: Callable[[], str | None],
    ) -> None:
        self._connect = connect
        self._sign_and_send = sign_and_send_transaction
        self._is_connected = is_connected
        self._get_address = get_address

    async def connect(self) -> str:
        address = await _resolve(self._connect())
        if not address:
            raise WalletError("Failed to connect wallet")
        return str(address)

    async def sign_and_send_transaction(self, transaction: EVMTransaction) -> str:
        return str(await _resolve(self._sign_and_send(transaction)))

    def is_connected(self) -> bool:
        return bool(self._is_connected())

    def get_address(self) -> str | None:
        return self._get_address()


def create_wallet_adapter(
    *,
    connect: Callable[[], MaybeAwaitable],
    sign_and_send_transaction: Callable[[EVMTransaction], MaybeAwaitable],
    is_connected: Callable[[], bool],
    get_address: Callable[[], str | None],
) -> CallbackWalletAdapter:
    return CallbackWalletAdapter(
        connect=connect,
        sign_and_send_transaction=sign_and_send_transaction,
        is_connected=is_connected,
        get_address=get_address,
    )


@runtime_checkable
class TransactionSigner(Protocol):
    """An ethers-style signer: async address lookup and send."""

    async def get_address(self) -> str:
        ...

    async def send_transaction(self, tx: Dict[str, Any]) -> Any:
        """Send a transaction; returns a hash string or an object with ``hash``."""
        ...


class SignerWalletAdapter:
    """WalletAdapter over a TransactionSigner.

    Args:
        signer: The signer, or None while no wallet is available.
        connect: Optional hook run before the address is read (e.g. to
            prompt the user); sync or async.
    """

    def __init__(
        self,
        signer: TransactionSigner | None,
        *,
        connect: Callable[[], MaybeAwaitable] | None = None,
    ) -> None:
        self._signer = signer
        self._connect_hook = connect
        self._address: str | None = None

    async def connect(self) -> str:
        if self._connect_hook is not None:
            await _resolve(self._connect_hook())
        if self._signer is None:
            raise WalletError("Failed to connect wallet")
        self._address = await self._signer.get_address()
        return self._address

    async def sign_and_send_transaction(self, transaction: EVMTransaction) -> str:
        if self._signer is None:
            raise WalletError("Wallet not connected")
        sent = await self._signer.send_transaction(
            {
                "to": transaction.to,
                "value": int(transaction.value),
                "data": transaction.data,
                "chainId": transaction.chain_id,
            }
        )
        return str(getattr(sent, "hash", sent))

    def is_connected(self) -> bool:
        return self._signer is not None

    def get_address(self) -> str | None:
        return self._address
