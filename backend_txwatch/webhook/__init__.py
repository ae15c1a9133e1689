"""
Webhook ingestion package.

Verifies Alchemy webhook signatures, parses the legacy token-event and
address-activity payload shapes, and extracts normalized transfers.
"""

from backend_txwatch.webhook.extractor import extract_from_transaction, extract_legacy
from backend_txwatch.webhook.models import (
    ADDRESS_ACTIVITY_TYPE,
    ActivityTransaction,
    AddressActivityPayload,
    DecodedPayload,
    Instruction,
    LegacyTokenEvent,
    LegacyTokenPayload,
    TransferRecord,
)
from backend_txwatch.webhook.parser import parse_payload
from backend_txwatch.webhook.signature import SIGNATURE_HEADER, compute_signature, verify_signature

__all__ = [
    "ADDRESS_ACTIVITY_TYPE",
    "ActivityTransaction",
    "AddressActivityPayload",
    "DecodedPayload",
    "Instruction",
    "LegacyTokenEvent",
    "LegacyTokenPayload",
    "SIGNATURE_HEADER",
    "TransferRecord",
    "compute_signature",
    "extract_from_transaction",
    "extract_legacy",
    "parse_payload",
    "verify_signature",
]
