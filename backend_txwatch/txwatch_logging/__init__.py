"""
Structured logging for Backend TxWatch.

JSON logs with timestamp, event_type and request_id.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_txwatch.txwatch_logging.logger import bind_request, get_logger

__all__ = ["bind_request", "get_logger"]
