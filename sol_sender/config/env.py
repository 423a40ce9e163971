"""
Environment variable loading for sol_sender.

- SOLANA_NETWORK: devnet | testnet | mainnet-beta (default: devnet)
- SOLANA_RPC_URL: RPC endpoint (read from .env)
- HELIUS_API_KEY: Helius API key (fallback for RPC URL)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is sol_sender/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEVNET = "devnet"
TESTNET = "testnet"
MAINNET = "mainnet-beta"

CLUSTER_RPC_URLS = {
    DEVNET: "https://api.devnet.solana.com",
    TESTNET: "https://api.testnet.solana.com",
    MAINNET: "https://api.mainnet-beta.solana.com",
}
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
HELIUS_DEVNET_URL_TEMPLATE = "https://devnet.helius-rpc.com/?api-key={key}"


def load_sender_env() -> None:
    """Load .env from project root. Existing environment variables win."""
    load_dotenv(_ENV_PATH, override=False)


def get_solana_network() -> str:
    """
    Return SOLANA_NETWORK (or SOLANA_CLUSTER) normalized to a cluster name.
    Unknown values fall back to devnet.
    """
    load_sender_env()
    raw = (os.getenv("SOLANA_NETWORK") or os.getenv("SOLANA_CLUSTER") or DEVNET).strip().lower()
    if raw in ("mainnet", MAINNET):
        return MAINNET
    if raw == TESTNET:
        return TESTNET
    return DEVNET


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: SOLANA_RPC_URL > HELIUS_API_KEY (network-specific) > public cluster default.
    """
    load_sender_env()
    url = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    network = get_solana_network()
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key and network in (DEVNET, MAINNET):
        if network == DEVNET:
            return HELIUS_DEVNET_URL_TEMPLATE.format(key=key)
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return CLUSTER_RPC_URLS[network]


def mask_rpc_url(url: str) -> str:
    """Hide API keys embedded in an RPC URL before logging it."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
