"""
Transfer extraction — decoded payloads to TransferRecord.

Legacy token events are filtered by monitored asset and recipient.
Address-activity items are reduced to the monitored address's native
balance delta; only incoming (positive) deltas are recorded. Purely
structural, no I/O. Failures for a single item raise
TransferProcessingError so the caller can isolate them.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable

from backend_txwatch.config.settings import NATIVE_ASSET_SENTINEL
from backend_txwatch.core.exceptions import TransferProcessingError
from backend_txwatch.webhook.models import ActivityTransaction, LegacyTokenEvent, TransferRecord
from backend_txwatch.webhook.parser import parse_timestamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def parse_amount(value: str) -> float:
    """Parse a decimal amount string; raises TransferProcessingError if not finite."""
    try:
        amount = float(value)
    except ValueError as e:
        raise TransferProcessingError(f"Failed to parse amount: {value!r}") from e
    if not math.isfinite(amount):
        raise TransferProcessingError(f"Amount is not finite: {value!r}")
    return amount


def extract_legacy(
    event: LegacyTokenEvent,
    monitored_address: str,
    monitored_asset: str,
) -> TransferRecord | None:
    """
    Build a record from a legacy token event, or None when filtered out.

    Asset and recipient are compared case-insensitively; a mismatch is not
    an error.
    """
    if not _same_address(event.token_address, monitored_asset):
        return None
    if not _same_address(event.to_address, monitored_address):
        return None

    amount = parse_amount(event.amount)
    try:
        timestamp = parse_timestamp(event.timestamp)
    except ValueError as e:
        raise TransferProcessingError(f"Failed to parse timestamp: {event.timestamp!r}") from e
    if not event.hash:
        raise TransferProcessingError("Transfer event has an empty hash")

    return TransferRecord(
        amount=amount,
        asset_identifier=event.token_address,
        from_address=event.from_address,
        to_address=event.to_address,
        timestamp=timestamp,
        transaction_hash=event.hash,
    )


def check_transaction_structure(item: ActivityTransaction) -> str:
    """
    Per-item structural checks; returns the transaction hash.

    Requires non-empty account keys and instructions, both balance lists
    and a signature.
    """
    if not item.account_keys:
        raise TransferProcessingError(f"Transaction item {item.index} has no account keys")
    if not item.instructions:
        raise TransferProcessingError(f"Transaction item {item.index} has no instructions")
    if item.pre_balances is None or item.post_balances is None:
        raise TransferProcessingError(f"Transaction item {item.index} has no balance metadata")
    tx_hash = item.transaction_hash
    if tx_hash is None:
        raise TransferProcessingError(f"Transaction item {item.index} has no signature")
    return tx_hash


def _find_account_index(account_keys: tuple, address: str) -> int | None:
    for i, key in enumerate(account_keys):
        if isinstance(key, str) and _same_address(key, address):
            return i
    return None


def _balance_at(balances: tuple, index: int, label: str) -> int:
    if index >= len(balances):
        raise TransferProcessingError(f"{label} has no entry for account index {index}")
    value = balances[index]
    # bool is an int subclass; lamport balances never are
    if isinstance(value, bool) or not isinstance(value, int):
        raise TransferProcessingError(f"{label}[{index}] is not an integer: {value!r}")
    return value


def infer_sender(item: ActivityTransaction) -> str:
    """
    Sender = account referenced by the first account index of the first instruction.

    Heuristic; may misattribute multi-instruction or multi-signer transactions.
    """
    if not item.instructions:
        raise TransferProcessingError("Cannot infer sender: no instructions")
    accounts = item.instructions[0].accounts
    if not accounts:
        raise TransferProcessingError("Cannot infer sender: first instruction has no accounts")
    idx = accounts[0]
    if isinstance(idx, bool) or not isinstance(idx, int) or not (0 <= idx < len(item.account_keys)):
        raise TransferProcessingError(f"Cannot infer sender: account index {idx!r} out of range")
    sender = item.account_keys[idx]
    if not isinstance(sender, str):
        raise TransferProcessingError(f"Cannot infer sender: account key {idx} is not a string")
    return sender


def extract_from_transaction(
    item: ActivityTransaction,
    monitored_address: str,
    units_per_whole: int,
    *,
    now: Callable[[], datetime] = _utcnow,
) -> TransferRecord | None:
    """
    Build a native-asset record from one address-activity item.

    Returns None when the monitored address is not among the account keys
    or its balance did not increase.
    """
    tx_hash = check_transaction_structure(item)

    index = _find_account_index(item.account_keys, monitored_address)
    if index is None:
        return None

    pre = _balance_at(item.pre_balances or (), index, "pre_balances")
    post = _balance_at(item.post_balances or (), index, "post_balances")
    delta_units = post - pre
    if delta_units <= 0:
        return None
    try:
        amount = delta_units / units_per_whole
    except OverflowError as e:
        raise TransferProcessingError(
            f"Balance delta {delta_units} at account index {index} is out of range"
        ) from e

    return TransferRecord(
        amount=amount,
        asset_identifier=NATIVE_ASSET_SENTINEL,
        from_address=infer_sender(item),
        to_address=monitored_address,
        timestamp=now(),
        transaction_hash=tx_hash,
    )
