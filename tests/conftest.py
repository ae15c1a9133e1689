"""
Pytest fixtures for TxWatch tests. Builds settings, an in-memory store,
an orchestrator and a FastAPI TestClient, plus payload/signature factories.
"""

from __future__ import annotations

import hashlib
import hmac
import json

import pytest

# Valid Solana pubkeys (base58, 32 bytes)
MONITORED = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
SENDER = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SYSTEM_PROGRAM = "11111111111111111111111111111111"
SIGNING_KEY = "whsec_test_signing_key"


@pytest.fixture
def settings():
    from backend_txwatch.config import Settings

    return Settings(
        webhook_signing_key=SIGNING_KEY,
        monitored_address=MONITORED,
        monitored_asset=USDC_MINT,
        native_units_per_whole=1_000_000_000,
    )


@pytest.fixture
def store():
    from backend_txwatch.storage import InMemoryTransferStore

    return InMemoryTransferStore()


@pytest.fixture
def orchestrator(settings, store):
    from backend_txwatch.api_server.server import build_orchestrator

    return build_orchestrator(settings, store)


@pytest.fixture
def client(settings, store):
    """FastAPI TestClient over an app wired to the shared store fixture."""
    from fastapi.testclient import TestClient

    from backend_txwatch.api_server.server import create_app

    return TestClient(create_app(settings, store))


@pytest.fixture
def sign():
    """Return HMAC-SHA256 hex of raw bytes under the test signing key."""

    def _sign(raw: bytes, key: str = SIGNING_KEY) -> str:
        return hmac.new(key.encode("utf-8"), raw, hashlib.sha256).hexdigest()

    return _sign


@pytest.fixture
def legacy_payload():
    """Factory for legacy token-event payload dicts; keyword overrides patch the event."""

    def _build(**overrides) -> dict:
        event = {
            "tokenAddress": USDC_MINT,
            "from": SENDER,
            "to": MONITORED,
            "amount": "12.5",
            "hash": "abc123",
            "timestamp": "2024-05-01T12:00:00Z",
        }
        event.update(overrides)
        return {"event": event}

    return _build


@pytest.fixture
def activity_item():
    """
    Factory for one address-activity transaction item (Alchemy shape).

    Monitored address at account index 1, sender at index 0.
    """

    def _build(
        signature: str = "5sigAAAA",
        pre: list | None = None,
        post: list | None = None,
        account_keys: list | None = None,
        instructions: list | None = None,
    ) -> dict:
        keys = account_keys if account_keys is not None else [SENDER, MONITORED, SYSTEM_PROGRAM]
        ixs = (
            instructions
            if instructions is not None
            else [{"accounts": [0, 1], "data": "3Bxs4h24hBtQy9rw", "program_id_index": 2}]
        )
        return {
            "signature": signature,
            "transaction": [
                {
                    "message": [
                        {
                            "account_keys": keys,
                            "instructions": ixs,
                            "header": [
                                {
                                    "num_required_signatures": 1,
                                    "num_readonly_signed_accounts": 0,
                                    "num_readonly_unsigned_accounts": 1,
                                }
                            ],
                            "recent_blockhash": "GHtXQBsoZHVnNFa9YevAzFr17DJjgHXk3ycTKD5xD3Zi",
                            "versioned": False,
                        }
                    ],
                    "signatures": [signature],
                }
            ],
            "meta": [
                {
                    "fee": 5000,
                    "pre_balances": pre if pre is not None else [5_000_000_000, 1_000_000_000, 1],
                    "post_balances": post if post is not None else [4_499_995_000, 1_500_000_000, 1],
                    "inner_instructions_none": False,
                    "log_messages": [],
                    "log_messages_none": False,
                    "return_data_none": False,
                    "compute_units_consumed": 150,
                }
            ],
            "index": 0,
            "is_vote": False,
        }

    return _build


@pytest.fixture
def activity_payload():
    """Wrap transaction items in an ADDRESS_ACTIVITY notification."""

    def _build(items: list, type_: str = "ADDRESS_ACTIVITY") -> dict:
        return {
            "webhookId": "wh_octsy2sn4ruiq8fd",
            "id": "whevt_e7v1y6jcqu0xfy6y",
            "createdAt": "2024-05-01T12:00:00.000Z",
            "type": type_,
            "event": {"transaction": items, "slot": 265_000_000, "network": "SOLANA_MAINNET"},
        }

    return _build


@pytest.fixture
def encode():
    """Serialize a payload the way the provider would send it."""

    def _encode(payload) -> bytes:
        return json.dumps(payload).encode("utf-8")

    return _encode
