"""
Supported chains and block-explorer links.

Static lookup data. Transactions carry their own ``chainId``; this table
only turns ids into names and explorer URLs.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NativeCurrency:
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    name: str
    rpc_url: str
    explorer_url: str
    native_currency: NativeCurrency

    def to_dict(self) -> dict[str, object]:
        return {
            "chainId": self.chain_id,
            "name": self.name,
            "rpcUrl": self.rpc_url,
            "explorerUrl": self.explorer_url,
            "nativeCurrency": {
                "name": self.native_currency.name,
                "symbol": self.native_currency.symbol,
                "decimals": self.native_currency.decimals,
            },
        }


_MNT = NativeCurrency(name="MNT", symbol="MNT", decimals=18)

MANTLE_MAINNET = ChainConfig(
    chain_id=5000,
    name="Mantle",
    rpc_url="https://rpc.mantle.xyz",
    explorer_url="https://mantlescan.xyz",
    native_currency=_MNT,
)

MANTLE_SEPOLIA = ChainConfig(
    chain_id=5003,
    name="Mantle Sepolia",
    rpc_url="https://rpc.sepolia.mantle.xyz",
    explorer_url="https://sepolia.mantlescan.xyz",
    native_currency=_MNT,
)

SUPPORTED_CHAINS: tuple[ChainConfig, ...] = (MANTLE_MAINNET, MANTLE_SEPOLIA)

DEFAULT_CHAIN = MANTLE_SEPOLIA


def get_chain_by_id(chain_id: int) -> ChainConfig | None:
    for chain in SUPPORTED_CHAINS:
        if chain.chain_id == chain_id:
            return chain
    return None


def get_explorer_url(chain_id: int, tx_hash: str) -> str:
    """Explorer page for a transaction, or "" for an unknown chain."""
    chain = get_chain_by_id(chain_id)
    if chain is None:
        return ""
    return f"{chain.explorer_url}/tx/{tx_hash}"


def get_address_explorer_url(chain_id: int, address: str) -> str:
    """Explorer page for an address, or "" for an unknown chain."""
    chain = get_chain_by_id(chain_id)
    if chain is None:
        return ""
    return f"{chain.explorer_url}/address/{address}"
