"""
Application settings.

Typed settings for the transfer pipeline, filled from environment variables
(and .env via config.env). Explicit construction overrides any field, which
is how tests build settings without touching the environment.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from functools import lru_cache

from sol_sender.config.env import (
    get_solana_network,
    get_solana_rpc_url,
    load_sender_env,
)

DEFAULT_EXPLORER_BASE_URL = "https://explorer.solana.com"
DEFAULT_CONFIRM_TIMEOUT_SEC = 60.0
DEFAULT_CONFIRM_POLL_INTERVAL_SEC = 1.0
DEFAULT_RPC_TIMEOUT_SEC = 20.0
DEFAULT_NOTIFY_TIMEOUT_SEC = 10.0
DEFAULT_UNPACK_DECIMALS = 0


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _usable_seconds(value: float) -> bool:
    """Positive and finite; nan or inf would never reach a deadline."""
    return math.isfinite(value) and value > 0


@dataclass(frozen=True)
class Settings:
    """Config for RPC access, confirmation polling and the unpack action."""

    network: str = field(default_factory=get_solana_network)
    rpc_url: str = field(default_factory=get_solana_rpc_url)
    explorer_base_url: str = field(
        default_factory=lambda: _env_str("EXPLORER_BASE_URL", DEFAULT_EXPLORER_BASE_URL)
    )
    rpc_timeout_sec: float = field(
        default_factory=lambda: _env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC)
    )
    confirm_timeout_sec: float = field(
        default_factory=lambda: _env_float("CONFIRM_TIMEOUT_SEC", DEFAULT_CONFIRM_TIMEOUT_SEC)
    )
    confirm_poll_interval_sec: float = field(
        default_factory=lambda: _env_float("CONFIRM_POLL_INTERVAL_SEC", DEFAULT_CONFIRM_POLL_INTERVAL_SEC)
    )
    # Unpack action: collector service endpoint, collector wallet and the token moved
    collector_endpoint: str = field(default_factory=lambda: _env_str("COLLECTOR_ENDPOINT"))
    collector_address: str = field(default_factory=lambda: _env_str("COLLECTOR_ADDRESS"))
    unpack_mint: str = field(default_factory=lambda: _env_str("UNPACK_MINT"))
    unpack_decimals: int = field(
        default_factory=lambda: _env_int("UNPACK_DECIMALS", DEFAULT_UNPACK_DECIMALS)
    )
    notify_timeout_sec: float = field(
        default_factory=lambda: _env_float("NOTIFY_TIMEOUT_SEC", DEFAULT_NOTIFY_TIMEOUT_SEC)
    )
    wallet_private_key: str = field(default_factory=lambda: _env_str("WALLET_PRIVATE_KEY"), repr=False)

    def __post_init__(self) -> None:
        if not self.rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if not _usable_seconds(self.confirm_poll_interval_sec):
            object.__setattr__(self, "confirm_poll_interval_sec", DEFAULT_CONFIRM_POLL_INTERVAL_SEC)
        if not _usable_seconds(self.confirm_timeout_sec):
            object.__setattr__(self, "confirm_timeout_sec", DEFAULT_CONFIRM_TIMEOUT_SEC)
        if not _usable_seconds(self.rpc_timeout_sec):
            object.__setattr__(self, "rpc_timeout_sec", DEFAULT_RPC_TIMEOUT_SEC)
        if not _usable_seconds(self.notify_timeout_sec):
            object.__setattr__(self, "notify_timeout_sec", DEFAULT_NOTIFY_TIMEOUT_SEC)
        if not 0 <= self.unpack_decimals <= 255:
            raise ValueError("unpack_decimals must be between 0 and 255")
        object.__setattr__(self, "explorer_base_url", self.explorer_base_url.rstrip("/"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read from the environment once."""
    load_sender_env()
    return Settings()
