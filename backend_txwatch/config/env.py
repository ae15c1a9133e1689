"""
Environment variable loading for TxWatch.

- SOLANA_NETWORK: mainnet-beta | devnet | testnet (default: mainnet-beta)
- SOLANA_RPC_URL: RPC endpoint override
- ALCHEMY_API_KEY: Alchemy key (used for the RPC URL when no override is set)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_txwatch/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

SOLANA_NETWORKS = ("mainnet-beta", "devnet", "testnet")
PUBLIC_RPC_URL_TEMPLATE = "https://api.{network}.solana.com"
ALCHEMY_MAINNET_URL_TEMPLATE = "https://solana-mainnet.g.alchemy.com/v2/{key}"
ALCHEMY_DEVNET_URL_TEMPLATE = "https://solana-devnet.g.alchemy.com/v2/{key}"


def load_txwatch_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def get_solana_network() -> str:
    """
    Return SOLANA_NETWORK from env: mainnet-beta | devnet | testnet.
    "mainnet" is accepted as an alias. Unknown values fall back to mainnet-beta.
    """
    load_txwatch_env()
    raw = (os.getenv("SOLANA_NETWORK") or "mainnet-beta").strip().lower()
    if raw == "mainnet":
        return "mainnet-beta"
    if raw in SOLANA_NETWORKS:
        return raw
    return "mainnet-beta"


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: SOLANA_RPC_URL > ALCHEMY_API_KEY (mainnet/devnet) > public cluster endpoint.
    """
    load_txwatch_env()
    url = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    network = get_solana_network()
    key = (os.getenv("ALCHEMY_API_KEY") or "").strip()
    if key and network == "mainnet-beta":
        return ALCHEMY_MAINNET_URL_TEMPLATE.format(key=key)
    if key and network == "devnet":
        return ALCHEMY_DEVNET_URL_TEMPLATE.format(key=key)
    return PUBLIC_RPC_URL_TEMPLATE.format(network=network)


def mask_rpc_url(url: str) -> str:
    """Hide API keys embedded in an RPC URL for logging."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    if "/v2/" in url:
        return url.split("/v2/")[0] + "/v2/***"
    return url
