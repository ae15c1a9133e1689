"""
Solana RPC client construction.

The client is created at startup for future direct-chain queries; no
ingestion operation calls it.
"""

from backend_txwatch.rpc.client import build_rpc_client

__all__ = ["build_rpc_client"]
