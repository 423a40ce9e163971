"""
Async Solana JSON-RPC client (httpx).

Covers the calls the transfer pipeline needs: getBalance, getAccountInfo,
getLatestBlockhash, sendTransaction and getSignatureStatuses. Transport
failures and JSON-RPC error objects both raise RpcError; callers translate
them into pipeline errors (AccountLookupFailed, SubmissionFailed, ...).
"""

from __future__ import annotations

import base64
import itertools
from dataclasses import dataclass
from typing import Any

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey

from sol_sender.config.env import mask_rpc_url
from sol_sender.core.exceptions import RpcError
from sol_sender.sender_logging import get_logger

logger = get_logger(__name__)

DEFAULT_COMMITMENT = "confirmed"


@dataclass(frozen=True)
class LatestBlockhash:
    blockhash: Hash
    last_valid_block_height: int


@dataclass(frozen=True)
class SignatureStatus:
    """One entry of getSignatureStatuses; None from the node means not yet seen."""

    slot: int
    confirmations: int | None  # None once rooted (finalized)
    err: Any  # None if the transaction succeeded
    confirmation_status: str | None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureStatus":
        return cls(
            slot=int(item.get("slot") or 0),
            confirmations=item.get("confirmations"),
            err=item.get("err"),
            confirmation_status=item.get("confirmationStatus"),
        )


class SolanaRpcClient:
    """
    Minimal async JSON-RPC client for one Solana endpoint.

    Pass ``client`` to share an httpx.AsyncClient (or inject a mock transport in
    tests); otherwise one is created and closed by ``aclose``.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_sec: float = 20.0,
        commitment: str = DEFAULT_COMMITMENT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._commitment = commitment
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))
        self._ids = itertools.count(1)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call; raise RpcError on transport or RPC error."""
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            logger.warning("rpc_transport_error", method=method, rpc_url=mask_rpc_url(self._rpc_url), error=str(e))
            raise RpcError(method, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise RpcError(method, "response is not JSON") from e
        if not isinstance(data, dict):
            raise RpcError(method, "unexpected response shape")
        if "error" in data:
            err = data["error"]
            if isinstance(err, dict):
                raise RpcError(method, str(err.get("message", err)), err.get("code"))
            raise RpcError(method, str(err))
        if "result" not in data:
            raise RpcError(method, "response has no result")
        return data["result"]

    async def get_balance(self, address: Pubkey) -> int:
        """Native balance in lamports."""
        result = await self._call("getBalance", [str(address), {"commitment": self._commitment}])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError("getBalance", "malformed result") from e

    async def get_account_info(self, address: Pubkey) -> dict[str, Any] | None:
        """Account data, or None if the account does not exist."""
        result = await self._call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self._commitment}],
        )
        if not isinstance(result, dict):
            raise RpcError("getAccountInfo", "malformed result")
        return result.get("value")

    async def get_latest_blockhash(self) -> LatestBlockhash:
        result = await self._call("getLatestBlockhash", [{"commitment": self._commitment}])
        try:
            value = result["value"]
            return LatestBlockhash(
                blockhash=Hash.from_string(value["blockhash"]),
                last_valid_block_height=int(value["lastValidBlockHeight"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError("getLatestBlockhash", "malformed result") from e

    async def send_transaction(self, wire: bytes) -> str:
        """Send a serialized, signed transaction; return its signature."""
        encoded = base64.b64encode(wire).decode("ascii")
        result = await self._call(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self._commitment}],
        )
        if not isinstance(result, str) or not result:
            raise RpcError("sendTransaction", "malformed result")
        return result

    async def get_signature_status(self, signature: str) -> SignatureStatus | None:
        result = await self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        try:
            item = result["value"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise RpcError("getSignatureStatuses", "malformed result") from e
        if item is None:
            return None
        return SignatureStatus.from_rpc_item(item)
