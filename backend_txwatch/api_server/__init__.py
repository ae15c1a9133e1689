"""
API server package — HTTP interface.

Receives provider webhooks and serves stored transfers by transaction
hash. Delegates all ingestion logic to the pipeline package.
"""
