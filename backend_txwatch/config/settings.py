"""
Application settings and environment configuration.

Reads the webhook signing secret, monitored address, monitored asset and
native unit constant from the environment (optionally via .env) and
validates them once. Missing or malformed values raise ConfigurationError,
which is fatal at startup.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass

from solders.pubkey import Pubkey

from backend_txwatch.config.env import get_solana_network, get_solana_rpc_url, load_txwatch_env
from backend_txwatch.core.exceptions import ConfigurationError

# Circle USDC mint on Solana mainnet
DEFAULT_USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
# Asset identifier recorded for native SOL transfers
NATIVE_ASSET_SENTINEL = "SOL"
LAMPORTS_PER_SOL = 1_000_000_000


@dataclass(frozen=True)
class Settings:
    """Validated service configuration."""

    webhook_signing_key: str
    monitored_address: str
    """Base58 address whose incoming transfers are recorded."""
    monitored_asset: str = DEFAULT_USDC_MINT
    """Token mint for legacy token events, or NATIVE_ASSET_SENTINEL."""
    native_units_per_whole: int = LAMPORTS_PER_SOL
    solana_network: str = "mainnet-beta"
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    api_host: str = "0.0.0.0"
    api_port: int = 3000


def _validate_pubkey(name: str, value: str) -> str:
    try:
        Pubkey.from_string(value)
    except Exception as e:
        raise ConfigurationError(f"{name} is not a valid Solana address: {value!r}") from e
    return value


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def load_settings() -> Settings:
    """Build Settings from the current environment. Raises ConfigurationError."""
    load_txwatch_env()

    signing_key = (os.getenv("ALCHEMY_WEBHOOK_SIGNING_KEY") or "").strip()
    if not signing_key:
        raise ConfigurationError("ALCHEMY_WEBHOOK_SIGNING_KEY must be set")

    address = (os.getenv("SOLANA_ADDR") or "").strip()
    if not address:
        raise ConfigurationError("SOLANA_ADDR must be set")
    _validate_pubkey("SOLANA_ADDR", address)

    asset = (os.getenv("USDC_TOKEN_ADDRESS") or "").strip() or DEFAULT_USDC_MINT
    if asset != NATIVE_ASSET_SENTINEL:
        _validate_pubkey("USDC_TOKEN_ADDRESS", asset)

    units = _int_env("NATIVE_UNITS_PER_WHOLE", LAMPORTS_PER_SOL)
    if units <= 0:
        raise ConfigurationError("NATIVE_UNITS_PER_WHOLE must be positive")

    return Settings(
        webhook_signing_key=signing_key,
        monitored_address=address,
        monitored_asset=asset,
        native_units_per_whole=units,
        solana_network=get_solana_network(),
        solana_rpc_url=get_solana_rpc_url(),
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=_int_env("PORT", 3000),
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first call."""
    return load_settings()


def reset_settings_cache() -> None:
    """Forget cached settings (tests change env between cases)."""
    get_settings.cache_clear()
