"""
Pytest fixtures for sol_sender tests.

FakeRpc stands in for the Solana node: account existence comes from a set of
addresses, signature statuses are replayed from a list, and every call is
recorded so tests can assert that validation failures never reach the network.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from sol_sender.core.confirmation import ConfirmationPoller
from sol_sender.core.exceptions import RpcError
from sol_sender.core.instructions import TOKEN_PROGRAM_ID
from sol_sender.pipeline import SessionContext, TransferPipeline
from sol_sender.rpc.client import LatestBlockhash, SignatureStatus
from sol_sender.wallet import KeypairWallet


def _status(confirmation_status: str | None, err: Any = None, confirmations: int | None = 1) -> SignatureStatus:
    return SignatureStatus(slot=100, confirmations=confirmations, err=err, confirmation_status=confirmation_status)


class FakeRpc:
    def __init__(
        self,
        *,
        existing: set[Pubkey] | None = None,
        statuses: list[SignatureStatus | None] | None = None,
        balance: int = 0,
        fail_lookup: bool = False,
        fail_send: bool = False,
        fail_blockhash: bool = False,
    ) -> None:
        self.existing = set(existing or ())
        self.statuses = list(statuses or [None])
        self.balance = balance
        self.fail_lookup = fail_lookup
        self.fail_send = fail_send
        self.fail_blockhash = fail_blockhash
        self.blockhash = Hash.new_unique()
        self.signature = str(Signature.new_unique())
        self.calls: list[tuple[str, Any]] = []
        self.sent: list[bytes] = []

    async def get_balance(self, address: Pubkey) -> int:
        self.calls.append(("getBalance", address))
        return self.balance

    async def get_account_info(self, address: Pubkey) -> dict[str, Any] | None:
        self.calls.append(("getAccountInfo", address))
        if self.fail_lookup:
            raise RpcError("getAccountInfo", "connection reset")
        if address in self.existing:
            return {"lamports": 2_039_280, "owner": str(TOKEN_PROGRAM_ID), "data": ["", "base64"], "executable": False}
        return None

    async def get_latest_blockhash(self) -> LatestBlockhash:
        self.calls.append(("getLatestBlockhash", None))
        if self.fail_blockhash:
            raise RpcError("getLatestBlockhash", "node is behind")
        return LatestBlockhash(self.blockhash, 1_000)

    async def send_transaction(self, wire: bytes) -> str:
        self.calls.append(("sendTransaction", len(wire)))
        self.sent.append(wire)
        if self.fail_send:
            raise RpcError("sendTransaction", "Blockhash not found", -32002)
        return self.signature

    async def get_signature_status(self, signature: str) -> SignatureStatus | None:
        self.calls.append(("getSignatureStatuses", signature))
        # Replay in order; the last entry repeats
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def wallet(keypair) -> KeypairWallet:
    return KeypairWallet(keypair)


@pytest.fixture
def context(wallet) -> SessionContext:
    return SessionContext(wallet=wallet)


@pytest.fixture
def mint() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def receiver() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def notifier() -> AsyncMock:
    n = AsyncMock()
    n.notify.return_value = True
    return n


def _make_pipeline(rpc: FakeRpc, notifier: Any = None) -> TransferPipeline:
    """Pipeline with fast polling so timeouts resolve in milliseconds."""
    poller = ConfirmationPoller(rpc, poll_interval_sec=0.001, timeout_sec=0.05)
    return TransferPipeline(rpc, poller=poller, notifier=notifier, network="devnet")


@pytest.fixture
def fake_rpc() -> type[FakeRpc]:
    """FakeRpc class; tests build one per scenario."""
    return FakeRpc


@pytest.fixture
def rpc_status():
    """Builds a getSignatureStatuses entry: rpc_status("confirmed", err=None)."""
    return _status


@pytest.fixture
def build_pipeline():
    return _make_pipeline
