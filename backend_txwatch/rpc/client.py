"""
Solana RPC client factory.

Construction does not contact the cluster. Any failure to build the client
is logged and raised as ConfigurationError so startup aborts instead of
running without it.
"""

from __future__ import annotations

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed

from backend_txwatch.config import Settings
from backend_txwatch.config.env import mask_rpc_url
from backend_txwatch.core.exceptions import ConfigurationError
from backend_txwatch.txwatch_logging import get_logger

logger = get_logger(__name__)

DEFAULT_RPC_TIMEOUT_SEC = 30.0


def build_rpc_client(settings: Settings, *, timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC) -> Client:
    """Return a confirmed-commitment RPC client for settings.solana_rpc_url."""
    rpc = mask_rpc_url(settings.solana_rpc_url)
    try:
        client = Client(settings.solana_rpc_url, commitment=Confirmed, timeout=timeout_sec)
    except Exception as e:
        logger.error(
            "rpc_client_init_failed",
            rpc=rpc,
            network=settings.solana_network,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise ConfigurationError(f"Failed to initialize Solana RPC client: {e}") from e
    logger.info("rpc_client_initialized", rpc=rpc, network=settings.solana_network)
    return client
