"""
Webhook signature verification.

Alchemy signs the exact request body with HMAC-SHA256 keyed by the
webhook signing key and sends the lowercase hex digest in the
x-alchemy-signature header. The digest must be computed over the raw bytes
received; re-serializing parsed JSON changes key order and whitespace.
"""

from __future__ import annotations

import hashlib
import hmac

from backend_txwatch.txwatch_logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-alchemy-signature"


def compute_signature(raw_body: bytes, signing_key: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of raw_body under signing_key."""
    return hmac.new(signing_key.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, claimed_signature: str, signing_key: str) -> bool:
    """
    Check claimed_signature against the HMAC of raw_body.

    Constant-time comparison. Never raises: any internal error (non-bytes
    body, non-string key or signature) means "not authenticated".
    """
    try:
        digest = compute_signature(raw_body, signing_key)
        is_valid = hmac.compare_digest(digest, claimed_signature)
    except Exception as e:
        logger.error("signature_verification_error", error=str(e), error_type=type(e).__name__)
        return False
    logger.debug(
        "signature_verification_completed",
        is_valid=is_valid,
        body_length=len(raw_body),
        signature_length=len(claimed_signature),
    )
    return is_valid
