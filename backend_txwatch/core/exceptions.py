"""
Application-level exceptions.

Request-level errors (authentication, payload validation) abort a whole
notification. TransferProcessingError is scoped to one transaction item and
is recovered by the ingestion pipeline. ConfigurationError is reserved for
fatal startup conditions.
"""

from __future__ import annotations

from enum import Enum


class TxWatchError(Exception):
    """Base class for all Backend TxWatch errors."""


class ConfigurationError(TxWatchError):
    """Required configuration is missing or invalid; the process cannot start."""


class WebhookAuthenticationError(TxWatchError):
    """Signature header missing, not a string, or not matching the body HMAC."""


class ValidationErrorKind(str, Enum):
    """Distinct categories of malformed webhook payloads."""

    INVALID_PAYLOAD = "invalid_payload"
    UNSUPPORTED_TYPE = "unsupported_type"
    MISSING_EVENT = "missing_event"
    MISSING_FIELDS = "missing_fields"
    INVALID_FIELD_TYPE = "invalid_field_type"
    INVALID_ADDRESS_FORMAT = "invalid_address_format"
    INVALID_AMOUNT_FORMAT = "invalid_amount_format"
    INVALID_TIMESTAMP_FORMAT = "invalid_timestamp_format"
    INVALID_TRANSACTION_STRUCTURE = "invalid_transaction_structure"


class PayloadValidationError(TxWatchError):
    """
    Top-level payload failed schema validation.

    Attributes:
        kind: Which check failed.
        field: Offending field for per-field checks (address, type).
        fields: Missing field names for MISSING_FIELDS.
    """

    def __init__(
        self,
        kind: ValidationErrorKind,
        message: str,
        *,
        field: str | None = None,
        fields: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.field = field
        self.fields = list(fields or [])

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {"error": str(self), "kind": self.kind.value}
        if self.field is not None:
            out["field"] = self.field
        if self.fields:
            out["fields"] = self.fields
        return out


class TransferProcessingError(TxWatchError):
    """One transaction item could not be turned into a transfer record."""


class TransferLookupError(TxWatchError):
    """Malformed transaction hash passed to the query path."""
