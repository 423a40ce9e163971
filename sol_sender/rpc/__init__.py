"""Solana JSON-RPC access."""

from sol_sender.rpc.client import (
    LatestBlockhash,
    SignatureStatus,
    SolanaRpcClient,
)

__all__ = ["LatestBlockhash", "SignatureStatus", "SolanaRpcClient"]
