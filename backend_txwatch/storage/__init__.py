"""
Transfer storage — hash-keyed index of extracted transfers.

MVP keeps records in memory via InMemoryTransferStore; the TransferStore
interface lets the backend be swapped without touching the pipeline.
"""

from backend_txwatch.storage.store import InMemoryTransferStore, TransferStore

__all__ = ["InMemoryTransferStore", "TransferStore"]
