"""
Ingestion orchestrator — verify, parse, extract and store one notification.

Per notification: RECEIVED -> AUTHENTICATING -> PARSING -> EXTRACTING ->
STORED | REJECTED. Authentication and payload validation fail fast for the
whole notification. Extraction is a fold over the transaction items: each
item ends as stored, filtered or failed, and a failed item never prevents
its siblings from being processed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from backend_txwatch.core.exceptions import (
    PayloadValidationError,
    TransferLookupError,
    TransferProcessingError,
    TxWatchError,
    ValidationErrorKind,
    WebhookAuthenticationError,
)
from backend_txwatch.storage import TransferStore
from backend_txwatch.txwatch_logging import get_logger
from backend_txwatch.webhook.extractor import extract_from_transaction, extract_legacy
from backend_txwatch.webhook.models import (
    AddressActivityPayload,
    DecodedPayload,
    LegacyTokenPayload,
    TransferRecord,
)
from backend_txwatch.webhook.parser import parse_payload
from backend_txwatch.webhook.signature import verify_signature


class NotificationStage(str, Enum):
    RECEIVED = "received"
    AUTHENTICATING = "authenticating"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    STORED = "stored"
    REJECTED = "rejected"


class NotificationStatus(str, Enum):
    """Caller-visible outcome of a notification."""

    ACCEPTED = "accepted"
    UNAUTHORIZED = "unauthorized"
    INVALID = "invalid"


class ItemOutcomeKind(str, Enum):
    STORED = "stored"
    FILTERED = "filtered"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    """Result of extracting one transaction item."""

    index: int
    kind: ItemOutcomeKind
    transaction_hash: str | None = None
    record: TransferRecord | None = None
    error: TransferProcessingError | None = None


@dataclass
class IngestResult:
    """Terminal state of one notification plus per-item outcomes."""

    status: NotificationStatus
    stage: NotificationStage
    error: TxWatchError | None = None
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status is NotificationStatus.ACCEPTED

    def count(self, kind: ItemOutcomeKind) -> int:
        return sum(1 for o in self.outcomes if o.kind is kind)

    def summary(self) -> dict[str, int]:
        return {k.value: self.count(k) for k in ItemOutcomeKind}


class IngestionOrchestrator:
    """
    Composes signature verification, parsing, extraction and storage.

    The store and logger are injected; the orchestrator holds no other
    mutable state, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        store: TransferStore,
        *,
        signing_key: str,
        monitored_address: str,
        monitored_asset: str,
        native_units_per_whole: int,
        logger: Any = None,
        verifier: Callable[[bytes, str, str], bool] = verify_signature,
    ) -> None:
        """
        Args:
            store: Shared transfer store.
            signing_key: Webhook HMAC secret.
            monitored_address: Address whose incoming transfers are recorded.
            monitored_asset: Token mint accepted for legacy token events.
            native_units_per_whole: Smallest native units per whole coin (lamports per SOL).
            logger: structlog-style logger; defaults to this module's logger.
            verifier: Signature check (raw_body, signature, key) -> bool.
        """
        if native_units_per_whole <= 0:
            raise ValueError("native_units_per_whole must be positive")
        self._store = store
        self._signing_key = signing_key
        self._monitored_address = monitored_address
        self._monitored_asset = monitored_asset
        self._units_per_whole = native_units_per_whole
        self._logger = logger if logger is not None else get_logger(__name__)
        self._verify = verifier

    @property
    def store(self) -> TransferStore:
        return self._store

    def _reject(
        self,
        status: NotificationStatus,
        stage: NotificationStage,
        error: TxWatchError,
    ) -> IngestResult:
        self._logger.warning(
            "notification_rejected",
            status=status.value,
            failed_stage=stage.value,
            error=str(error),
        )
        return IngestResult(status=status, stage=NotificationStage.REJECTED, error=error)

    def ingest(self, raw_body: bytes, signature: Any) -> IngestResult:
        """
        Process one notification from its raw body and claimed signature.

        The body is only decoded after the signature matches, and the HMAC
        is taken over raw_body exactly as received.
        """
        stage = NotificationStage.AUTHENTICATING
        self._logger.debug("notification_stage", stage=stage.value, body_length=len(raw_body))
        if not isinstance(signature, str) or not signature:
            return self._reject(
                NotificationStatus.UNAUTHORIZED,
                stage,
                WebhookAuthenticationError("Missing signature"),
            )
        if not self._verify(raw_body, signature, self._signing_key):
            return self._reject(
                NotificationStatus.UNAUTHORIZED,
                stage,
                WebhookAuthenticationError("Invalid signature"),
            )

        stage = NotificationStage.PARSING
        self._logger.debug("notification_stage", stage=stage.value)
        try:
            value = json.loads(raw_body)
        except (UnicodeDecodeError, ValueError) as e:
            error = PayloadValidationError(
                ValidationErrorKind.INVALID_PAYLOAD, f"Body is not valid JSON: {e}"
            )
            return self._reject(NotificationStatus.INVALID, stage, error)
        try:
            payload = parse_payload(value)
        except PayloadValidationError as e:
            return self._reject(NotificationStatus.INVALID, stage, e)

        return self.ingest_payload(payload)

    def ingest_payload(self, payload: DecodedPayload) -> IngestResult:
        """Extract and store transfers from an already authenticated, parsed payload."""
        self._logger.debug("notification_stage", stage=NotificationStage.EXTRACTING.value)
        outcomes = [self._store_outcome(o) for o in self._extract(payload)]
        result = IngestResult(
            status=NotificationStatus.ACCEPTED,
            stage=NotificationStage.STORED,
            outcomes=outcomes,
        )
        self._logger.info("notification_processed", **result.summary())
        return result

    def _extract(self, payload: DecodedPayload) -> list[ItemOutcome]:
        if isinstance(payload, LegacyTokenPayload):
            event = payload.event
            return [
                self._run_item(
                    0,
                    event.hash,
                    lambda: extract_legacy(event, self._monitored_address, self._monitored_asset),
                )
            ]
        if isinstance(payload, AddressActivityPayload):
            return [
                self._run_item(
                    item.index,
                    item.transaction_hash,
                    lambda item=item: extract_from_transaction(
                        item, self._monitored_address, self._units_per_whole
                    ),
                )
                for item in payload.transactions
            ]
        raise TypeError(f"Unhandled payload variant: {type(payload).__name__}")

    def _run_item(
        self,
        index: int,
        tx_hash: str | None,
        extract: Callable[[], TransferRecord | None],
    ) -> ItemOutcome:
        try:
            record = extract()
        except TransferProcessingError as e:
            self._logger.error(
                "transfer_processing_failed", item_index=index, tx_hash=tx_hash, error=str(e)
            )
            return ItemOutcome(index=index, kind=ItemOutcomeKind.FAILED, transaction_hash=tx_hash, error=e)
        if record is None:
            self._logger.info("transfer_filtered", item_index=index, tx_hash=tx_hash)
            return ItemOutcome(index=index, kind=ItemOutcomeKind.FILTERED, transaction_hash=tx_hash)
        return ItemOutcome(
            index=index,
            kind=ItemOutcomeKind.STORED,
            transaction_hash=record.transaction_hash,
            record=record,
        )

    def _store_outcome(self, outcome: ItemOutcome) -> ItemOutcome:
        if outcome.record is not None:
            self._store.upsert(outcome.record)
            self._logger.info(
                "transfer_recorded",
                tx_hash=outcome.record.transaction_hash,
                amount=outcome.record.amount,
                asset=outcome.record.asset_identifier,
                sender=outcome.record.from_address,
            )
        return outcome

    def query_by_hash(self, tx_hash: Any) -> TransferRecord | None:
        """Look up a stored transfer; raises TransferLookupError for malformed hashes."""
        if not isinstance(tx_hash, str):
            raise TransferLookupError("Transaction hash must be a string")
        if not tx_hash.strip():
            raise TransferLookupError("Transaction hash must be non-empty")
        record = self._store.get(tx_hash)
        if record is None:
            self._logger.info("transfer_not_found", tx_hash=tx_hash)
        else:
            self._logger.info("transfer_found", tx_hash=tx_hash)
        return record
