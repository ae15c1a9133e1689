"""
Data models for webhook ingestion.

Decoded payloads form a tagged union (LegacyTokenPayload |
AddressActivityPayload) produced by the parser and consumed exhaustively
by the extractor. TransferRecord is the canonical stored entity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

# Discriminator value of Alchemy address-activity notifications
ADDRESS_ACTIVITY_TYPE = "ADDRESS_ACTIVITY"


@dataclass(frozen=True)
class TransferRecord:
    """
    One normalized transfer into the monitored address.

    Immutable; a later record with the same transaction_hash replaces it
    in the store wholesale.
    """

    amount: float
    """Quantity in display units (SOL, or token units as sent by the provider)."""
    asset_identifier: str
    """Token mint address, or the native-asset sentinel."""
    from_address: str
    to_address: str
    timestamp: datetime
    """Timezone-aware; from the payload when present, else processing time."""
    transaction_hash: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-serializable API representation."""
        return {
            "amount": self.amount,
            "assetIdentifier": self.asset_identifier,
            "from": self.from_address,
            "to": self.to_address,
            "timestamp": self.timestamp.isoformat(),
            "transactionHash": self.transaction_hash,
        }


@dataclass(frozen=True)
class LegacyTokenEvent:
    """Flat token-transfer event; amount and timestamp kept as received strings."""

    token_address: str
    from_address: str
    to_address: str
    amount: str
    hash: str
    timestamp: str


@dataclass(frozen=True)
class LegacyTokenPayload:
    """Legacy notification shape: exactly one token event."""

    event: LegacyTokenEvent


@dataclass(frozen=True)
class Instruction:
    accounts: tuple[Any, ...]
    """Indices into the transaction's account keys, as received."""
    data: str | None = None
    program_id_index: int | None = None


@dataclass(frozen=True)
class ActivityTransaction:
    """
    One transaction item of an address-activity notification.

    Decoded leniently: missing lists are empty here and rejected per item
    during extraction, so a malformed item never aborts its siblings.
    """

    index: int
    """Position of the item within the notification."""
    signature: str | None
    account_keys: tuple[Any, ...] = ()
    instructions: tuple[Instruction, ...] = ()
    pre_balances: tuple[Any, ...] | None = None
    post_balances: tuple[Any, ...] | None = None
    signatures: tuple[Any, ...] = ()
    is_vote: bool = False

    @property
    def transaction_hash(self) -> str | None:
        """Item signature, falling back to the first inner transaction signature."""
        if isinstance(self.signature, str) and self.signature:
            return self.signature
        if self.signatures and isinstance(self.signatures[0], str) and self.signatures[0]:
            return self.signatures[0]
        return None


@dataclass(frozen=True)
class AddressActivityPayload:
    """Raw address-activity notification: a batch of transaction items."""

    webhook_id: str | None
    notification_id: str | None
    created_at: str | None
    type: str
    transactions: tuple[ActivityTransaction, ...] = field(default_factory=tuple)
    slot: int | None = None
    network: str | None = None


DecodedPayload = Union[LegacyTokenPayload, AddressActivityPayload]
