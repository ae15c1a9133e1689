"""
Transfer store abstraction and in-memory implementation.

Keyed by transaction hash. upsert replaces any existing record wholesale
(last write wins); get returns None for unknown hashes. No eviction,
capacity bound or persistence.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from backend_txwatch.txwatch_logging import get_logger
from backend_txwatch.webhook.models import TransferRecord

logger = get_logger(__name__)


class TransferStore(ABC):
    """Abstract interface for transfer persistence."""

    @abstractmethod
    def upsert(self, record: TransferRecord) -> None:
        """Insert or replace the record stored under record.transaction_hash."""
        ...

    @abstractmethod
    def get(self, tx_hash: str) -> TransferRecord | None:
        """Return the record for tx_hash, or None."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Number of stored records."""
        ...


class InMemoryTransferStore(TransferStore):
    """
    Process-lifetime dict store, safe for concurrent request threads.

    Records are frozen dataclasses swapped in under a lock, so a reader
    sees either the previous record or the new one, never a mix.
    """

    def __init__(self) -> None:
        self._records: dict[str, TransferRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, record: TransferRecord) -> None:
        if not record.transaction_hash:
            raise ValueError("transaction_hash must be non-empty")
        with self._lock:
            replaced = record.transaction_hash in self._records
            self._records[record.transaction_hash] = record
        logger.debug("transfer_upserted", tx_hash=record.transaction_hash, replaced=replaced)

    def get(self, tx_hash: str) -> TransferRecord | None:
        with self._lock:
            return self._records.get(tx_hash)

    def count(self) -> int:
        with self._lock:
            return len(self._records)
