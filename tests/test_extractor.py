"""
Tests for transfer extraction: legacy filtering and address-activity balance deltas.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from backend_txwatch.core.exceptions import TransferProcessingError
from backend_txwatch.webhook.extractor import (
    extract_from_transaction,
    extract_legacy,
    infer_sender,
    parse_amount,
)
from backend_txwatch.webhook.models import ActivityTransaction, Instruction, LegacyTokenEvent
from backend_txwatch.webhook.parser import parse_payload

MONITORED = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
SENDER = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
OTHER_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
LAMPORTS = 1_000_000_000
FIXED_NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _event(**overrides) -> LegacyTokenEvent:
    fields = {
        "token_address": USDC_MINT,
        "from_address": SENDER,
        "to_address": MONITORED,
        "amount": "12.5",
        "hash": "abc123",
        "timestamp": "2024-05-01T12:00:00Z",
    }
    fields.update(overrides)
    return LegacyTokenEvent(**fields)


def _item(pre=1_000_000_000, post=1_500_000_000, **overrides) -> ActivityTransaction:
    fields = {
        "index": 0,
        "signature": "5sigAAAA",
        "account_keys": (SENDER, MONITORED, "11111111111111111111111111111111"),
        "instructions": (Instruction(accounts=(0, 1), program_id_index=2),),
        "pre_balances": (5_000_000_000, pre, 1),
        "post_balances": (4_499_995_000, post, 1),
    }
    fields.update(overrides)
    return ActivityTransaction(**fields)


# -----------------------------------------------------------------------------
# Legacy token events
# -----------------------------------------------------------------------------


def test_legacy_match_builds_record():
    record = extract_legacy(_event(), MONITORED, USDC_MINT)
    assert record is not None
    assert record.amount == 12.5
    assert record.asset_identifier == USDC_MINT
    assert record.from_address == SENDER
    assert record.to_address == MONITORED
    assert record.transaction_hash == "abc123"
    assert record.timestamp == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)


def test_legacy_asset_mismatch_filtered():
    assert extract_legacy(_event(token_address=OTHER_MINT), MONITORED, USDC_MINT) is None


def test_legacy_recipient_mismatch_filtered():
    assert extract_legacy(_event(to_address=SENDER), MONITORED, USDC_MINT) is None


@pytest.mark.parametrize("transform", [str, str.upper, str.lower])
def test_legacy_filters_are_case_insensitive(transform):
    """Exact-case and differently-cased matches give the same outcome."""
    event = _event(token_address=transform(USDC_MINT), to_address=transform(MONITORED))
    record = extract_legacy(event, MONITORED, USDC_MINT)
    assert record is not None
    assert record.to_address == transform(MONITORED)
    mismatched = _event(token_address=transform(OTHER_MINT), to_address=transform(MONITORED))
    assert extract_legacy(mismatched, MONITORED, USDC_MINT) is None


@pytest.mark.parametrize("amount", ["", "."])
def test_legacy_unparseable_amount_is_processing_error(amount):
    with pytest.raises(TransferProcessingError, match="amount"):
        extract_legacy(_event(amount=amount), MONITORED, USDC_MINT)


def test_legacy_unparseable_timestamp_is_processing_error():
    with pytest.raises(TransferProcessingError, match="timestamp"):
        extract_legacy(_event(timestamp="not a time"), MONITORED, USDC_MINT)


def test_legacy_empty_hash_is_processing_error():
    with pytest.raises(TransferProcessingError, match="hash"):
        extract_legacy(_event(hash=""), MONITORED, USDC_MINT)


def test_parse_amount():
    assert parse_amount("0.000001") == 0.000001
    assert parse_amount("5.") == 5.0
    with pytest.raises(TransferProcessingError):
        parse_amount("inf")


# -----------------------------------------------------------------------------
# Address activity items
# -----------------------------------------------------------------------------


def test_positive_delta_builds_native_record():
    record = extract_from_transaction(_item(), MONITORED, LAMPORTS, now=lambda: FIXED_NOW)
    assert record is not None
    assert record.amount == 0.5
    assert record.asset_identifier == "SOL"
    assert record.to_address == MONITORED
    assert record.from_address == SENDER
    assert record.timestamp == FIXED_NOW
    assert record.transaction_hash == "5sigAAAA"


@pytest.mark.parametrize(
    "pre, post",
    [(1, 2), (0, 1_000_000_000), (123_456_789, 987_654_321), (10**15, 10**15 + 7)],
)
def test_amount_equals_delta_over_unit(pre, post):
    record = extract_from_transaction(_item(pre=pre, post=post), MONITORED, LAMPORTS)
    assert record is not None
    assert record.amount == (post - pre) / LAMPORTS


@pytest.mark.parametrize("pre, post", [(1_500_000_000, 1_000_000_000), (1_000, 1_000), (1, 0)])
def test_non_positive_delta_skipped(pre, post):
    assert extract_from_transaction(_item(pre=pre, post=post), MONITORED, LAMPORTS) is None


def test_monitored_address_absent_skipped():
    item = _item(account_keys=(SENDER, USDC_MINT, "11111111111111111111111111111111"))
    assert extract_from_transaction(item, MONITORED, LAMPORTS) is None


def test_monitored_address_matched_case_insensitively():
    item = _item(account_keys=(SENDER, MONITORED.upper(), "11111111111111111111111111111111"))
    record = extract_from_transaction(item, MONITORED, LAMPORTS)
    assert record is not None
    assert record.to_address == MONITORED


def test_custom_unit_constant():
    record = extract_from_transaction(_item(pre=0, post=250), MONITORED, 1_000)
    assert record.amount == 0.25


def test_sender_is_first_account_of_first_instruction():
    item = _item(
        instructions=(
            Instruction(accounts=(2, 1)),
            Instruction(accounts=(0, 1)),
        )
    )
    assert infer_sender(item) == "11111111111111111111111111111111"


def test_signature_falls_back_to_inner_signatures():
    record = extract_from_transaction(_item(signature=None, signatures=("innerSig",)), MONITORED, LAMPORTS)
    assert record.transaction_hash == "innerSig"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"instructions": ()}, "no instructions"),
        ({"account_keys": ()}, "no account keys"),
        ({"pre_balances": None}, "no balance metadata"),
        ({"post_balances": None}, "no balance metadata"),
        ({"signature": None}, "no signature"),
    ],
)
def test_malformed_structure_is_processing_error(overrides, message):
    with pytest.raises(TransferProcessingError, match=message):
        extract_from_transaction(_item(**overrides), MONITORED, LAMPORTS)


def test_empty_first_instruction_accounts_is_processing_error():
    item = _item(instructions=(Instruction(accounts=()), Instruction(accounts=(0, 1))))
    with pytest.raises(TransferProcessingError, match="no accounts"):
        extract_from_transaction(item, MONITORED, LAMPORTS)


def test_out_of_range_sender_index_is_processing_error():
    item = _item(instructions=(Instruction(accounts=(9,)),))
    with pytest.raises(TransferProcessingError, match="out of range"):
        extract_from_transaction(item, MONITORED, LAMPORTS)


def test_short_balance_list_is_processing_error():
    item = _item(pre_balances=(5_000_000_000,))
    with pytest.raises(TransferProcessingError, match="pre_balances"):
        extract_from_transaction(item, MONITORED, LAMPORTS)


def test_non_integer_balance_is_processing_error():
    item = _item(post="1500000000")
    with pytest.raises(TransferProcessingError, match="not an integer"):
        extract_from_transaction(item, MONITORED, LAMPORTS)


def test_parsed_item_end_to_end(activity_payload, activity_item):
    decoded = parse_payload(activity_payload([activity_item()]))
    record = extract_from_transaction(decoded.transactions[0], MONITORED, LAMPORTS)
    assert record.amount == 0.5
    assert record.from_address == SENDER


def test_delta_beyond_float_range_is_processing_error():
    item = _item(pre=5, post=10**400)
    with pytest.raises(TransferProcessingError, match="out of range"):
        extract_from_transaction(item, MONITORED, LAMPORTS)
