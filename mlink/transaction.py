"""
Per-call wire messages: the transaction request and response.

TransactionRequest flows consumer → producer; TransactionResponse flows
back. Both are ephemeral. EVMTransaction is opaque to the protocol; its
meaning belongs to the wallet adapter that signs it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Union

from mlink.metadata import ActionMetadata

ParameterValue = Union[str, List[str]]

NEXT_ACTION_POST = "post"
NEXT_ACTION_INLINE = "inline"


@dataclass(frozen=True)
class EVMTransaction:
    """An unsigned EVM transaction descriptor.

    Attributes:
        to: Destination address (0x + 40 hex).
        value: Amount in base units (wei) as a decimal string.
        data: Calldata as 0x-prefixed hex.
        chain_id: Positive chain identifier.
    """

    to: str
    value: str
    data: str
    chain_id: int

    def to_dict(self) -> dict[str, object]:
        return {
            "to": self.to,
            "value": self.value,
            "data": self.data,
            "chainId": self.chain_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EVMTransaction:
        return cls(
            to=data["to"],
            value=data["value"],
            data=data["data"],
            chain_id=data["chainId"],
        )


@dataclass(frozen=True)
class TransactionRequest:
    """POST body: who is acting and which action/values they chose."""

    account: str
    action: str
    input: str | None = None
    data: Dict[str, ParameterValue] | None = None

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"account": self.account, "action": self.action}
        if self.input is not None:
            result["input"] = self.input
        if self.data is not None:
            result["data"] = {k: v if isinstance(v, str) else list(v) for k, v in self.data.items()}
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TransactionRequest:
        values = data.get("data")
        return cls(
            account=data["account"],
            action=data["action"],
            input=data.get("input"),
            data=None if values is None else dict(values),
        )


@dataclass(frozen=True)
class NextActionLink:
    """Chaining pointer returned after a transaction.

    ``type == "post"`` carries a callback ``href``; ``type == "inline"``
    embeds the next ``action`` directly.
    """

    type: str
    href: str | None = None
    action: ActionMetadata | None = None

    def to_dict(self) -> dict[str, object]:
        if self.type == NEXT_ACTION_INLINE:
            if self.action is None:
                raise ValueError("inline next action requires action metadata")
            return {"type": self.type, "action": self.action.to_dict()}
        return {"type": self.type, "href": self.href}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NextActionLink:
        if data["type"] == NEXT_ACTION_INLINE:
            return cls(type=NEXT_ACTION_INLINE, action=ActionMetadata.from_dict(data["action"]))
        return cls(type=data["type"], href=data["href"])


@dataclass(frozen=True)
class TransactionResponse:
    """POST response: one or more transactions, a note, and a next link."""

    transaction: EVMTransaction | None = None
    transactions: tuple[EVMTransaction, ...] | None = None
    message: str | None = None
    next: NextActionLink | None = None

    def all_transactions(self) -> list[EVMTransaction]:
        """Ordered descriptors to sign; ``transactions`` wins over ``transaction``."""
        if self.transactions:
            return list(self.transactions)
        if self.transaction is not None:
            return [self.transaction]
        return []

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {}
        if self.transaction is not None:
            result["transaction"] = self.transaction.to_dict()
        if self.transactions is not None:
            result["transactions"] = [t.to_dict() for t in self.transactions]
        if self.message is not None:
            result["message"] = self.message
        if self.next is not None:
            result["links"] = {"next": self.next.to_dict()}
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TransactionResponse:
        single = data.get("transaction")
        many = data.get("transactions")
        next_link = (data.get("links") or {}).get("next")
        return cls(
            transaction=None if single is None else EVMTransaction.from_dict(single),
            transactions=None if many is None else tuple(EVMTransaction.from_dict(t) for t in many),
            message=data.get("message"),
            next=None if next_link is None else NextActionLink.from_dict(next_link),
        )


@dataclass(frozen=True)
class ActionContext:
    """What a producer's handler sees for one request."""

    account: str
    action: str
    input: str | None = None
    data: Dict[str, ParameterValue] | None = None
