"""
Webhook payload parser — decoded JSON to typed payload variants.

Dispatches on the top-level `type` discriminator: ADDRESS_ACTIVITY
notifications decode to AddressActivityPayload; payloads without a type
are treated as the legacy flat token event. Request-level problems raise
PayloadValidationError with a distinct ValidationErrorKind. Item-level
structure of address-activity transactions is left to the extractor.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from backend_txwatch.core.exceptions import PayloadValidationError, ValidationErrorKind
from backend_txwatch.txwatch_logging import get_logger
from backend_txwatch.webhook.models import (
    ADDRESS_ACTIVITY_TYPE,
    ActivityTransaction,
    AddressActivityPayload,
    DecodedPayload,
    Instruction,
    LegacyTokenEvent,
    LegacyTokenPayload,
)

logger = get_logger(__name__)

BASE58_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
# Digits with an optional single decimal point; also admits "" and "."
DECIMAL_AMOUNT_RE = re.compile(r"^\d*\.?\d*$")

LEGACY_REQUIRED_FIELDS = ("tokenAddress", "to", "from", "amount", "hash", "timestamp")
LEGACY_ADDRESS_FIELDS = ("tokenAddress", "to", "from")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp to an aware datetime (naive values are UTC).

    Raises ValueError when the string is not a valid point in time.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _unwrap(value: Any) -> Any:
    """Alchemy wraps transaction/message/meta in one-element lists; accept both forms."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _as_tuple(value: Any) -> tuple[Any, ...]:
    return tuple(value) if isinstance(value, list) else ()


def _parse_legacy(payload: dict[str, Any]) -> LegacyTokenPayload:
    event = payload.get("event")
    if not isinstance(event, dict):
        raise PayloadValidationError(
            ValidationErrorKind.MISSING_EVENT, "Missing or invalid event object"
        )

    missing = [name for name in LEGACY_REQUIRED_FIELDS if name not in event]
    if missing:
        raise PayloadValidationError(
            ValidationErrorKind.MISSING_FIELDS,
            f"Missing required fields: {', '.join(missing)}",
            fields=missing,
        )

    for name in LEGACY_REQUIRED_FIELDS:
        if not isinstance(event[name], str):
            raise PayloadValidationError(
                ValidationErrorKind.INVALID_FIELD_TYPE,
                f"{name} must be a string",
                field=name,
            )

    for name in LEGACY_ADDRESS_FIELDS:
        if not BASE58_ADDRESS_RE.match(event[name]):
            raise PayloadValidationError(
                ValidationErrorKind.INVALID_ADDRESS_FORMAT,
                f"Invalid {name} address format",
                field=name,
            )

    if not DECIMAL_AMOUNT_RE.match(event["amount"]):
        raise PayloadValidationError(
            ValidationErrorKind.INVALID_AMOUNT_FORMAT, "Invalid amount format", field="amount"
        )

    try:
        parse_timestamp(event["timestamp"])
    except ValueError as e:
        raise PayloadValidationError(
            ValidationErrorKind.INVALID_TIMESTAMP_FORMAT,
            "Invalid timestamp format",
            field="timestamp",
        ) from e

    return LegacyTokenPayload(
        event=LegacyTokenEvent(
            token_address=event["tokenAddress"],
            from_address=event["from"],
            to_address=event["to"],
            amount=event["amount"],
            hash=event["hash"],
            timestamp=event["timestamp"],
        )
    )


def _decode_instruction(raw: Any) -> Instruction:
    if not isinstance(raw, dict):
        return Instruction(accounts=())
    program_idx = raw.get("program_id_index")
    return Instruction(
        accounts=_as_tuple(raw.get("accounts")),
        data=raw.get("data") if isinstance(raw.get("data"), str) else None,
        program_id_index=program_idx if isinstance(program_idx, int) else None,
    )


def _decode_activity_transaction(index: int, raw: dict[str, Any]) -> ActivityTransaction:
    """Decode one transaction item without rejecting incomplete structure."""
    tx_detail = _unwrap(raw.get("transaction"))
    tx_detail = tx_detail if isinstance(tx_detail, dict) else {}
    message = _unwrap(tx_detail.get("message"))
    message = message if isinstance(message, dict) else {}
    meta = _unwrap(raw.get("meta"))
    meta = meta if isinstance(meta, dict) else {}

    pre = meta.get("pre_balances")
    post = meta.get("post_balances")
    signature = raw.get("signature")
    return ActivityTransaction(
        index=index,
        signature=signature if isinstance(signature, str) else None,
        account_keys=_as_tuple(message.get("account_keys")),
        instructions=tuple(_decode_instruction(ix) for ix in _as_tuple(message.get("instructions"))),
        pre_balances=tuple(pre) if isinstance(pre, list) else None,
        post_balances=tuple(post) if isinstance(post, list) else None,
        signatures=_as_tuple(tx_detail.get("signatures")),
        is_vote=bool(raw.get("is_vote", False)),
    )


def _parse_address_activity(payload: dict[str, Any]) -> AddressActivityPayload:
    event = payload.get("event")
    if not isinstance(event, dict):
        raise PayloadValidationError(
            ValidationErrorKind.INVALID_TRANSACTION_STRUCTURE,
            "Address activity payload must carry an event object",
        )
    items = event.get("transaction")
    if not isinstance(items, list) or not items:
        raise PayloadValidationError(
            ValidationErrorKind.INVALID_TRANSACTION_STRUCTURE,
            "Address activity event must carry a non-empty transaction list",
        )
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise PayloadValidationError(
                ValidationErrorKind.INVALID_TRANSACTION_STRUCTURE,
                f"Transaction item {i} must be an object",
            )

    slot = event.get("slot")
    return AddressActivityPayload(
        webhook_id=payload.get("webhookId"),
        notification_id=payload.get("id"),
        created_at=payload.get("createdAt"),
        type=payload["type"],
        transactions=tuple(_decode_activity_transaction(i, item) for i, item in enumerate(items)),
        slot=slot if isinstance(slot, int) else None,
        network=event.get("network"),
    )


def parse_payload(payload: Any) -> DecodedPayload:
    """
    Validate and decode a webhook JSON value.

    Returns LegacyTokenPayload or AddressActivityPayload.
    Raises PayloadValidationError on the first failed check.
    """
    if not isinstance(payload, dict):
        raise PayloadValidationError(ValidationErrorKind.INVALID_PAYLOAD, "Payload must be an object")

    if "type" in payload:
        payload_type = payload["type"]
        if payload_type != ADDRESS_ACTIVITY_TYPE:
            raise PayloadValidationError(
                ValidationErrorKind.UNSUPPORTED_TYPE,
                f"Unsupported webhook type: {payload_type!r}",
                field="type",
            )
        decoded: DecodedPayload = _parse_address_activity(payload)
        logger.debug(
            "payload_parsed",
            shape="address_activity",
            transaction_count=len(decoded.transactions),
            webhook_id=decoded.webhook_id,
        )
        return decoded

    decoded = _parse_legacy(payload)
    logger.debug("payload_parsed", shape="legacy_token_event", tx_hash=decoded.event.hash)
    return decoded
