"""
Ingestion pipeline package.

IngestionOrchestrator runs each webhook notification through signature
verification, parsing, per-item extraction and storage, and serves
lookups by transaction hash.
"""

from backend_txwatch.pipeline.ingestion import (
    IngestionOrchestrator,
    IngestResult,
    ItemOutcome,
    ItemOutcomeKind,
    NotificationStage,
    NotificationStatus,
)

__all__ = [
    "IngestionOrchestrator",
    "IngestResult",
    "ItemOutcome",
    "ItemOutcomeKind",
    "NotificationStage",
    "NotificationStatus",
]
