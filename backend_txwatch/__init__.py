"""
Backend TxWatch — webhook ingestion for transfers to a monitored Solana address.

Receives Alchemy address-activity notifications, authenticates them,
extracts incoming transfers and keeps them queryable by transaction hash.
Modular layout: webhook (verify/parse/extract), storage, pipeline, API server.
"""

__version__ = "0.1.0"
