"""
Wallet capability.

The pipeline never owns keys: it is handed something that can report a public
key, sign a Transaction, and optionally sign and send it. KeypairWallet is the
local implementation used by the CLI; browser or hardware wallets plug in by
implementing the same protocol.
"""

from __future__ import annotations

import json
from typing import Protocol, runtime_checkable

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from sol_sender.core.submitter import Submitter
from sol_sender.core.transaction import Transaction
from sol_sender.sender_logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class WalletCapability(Protocol):
    @property
    def public_key(self) -> Pubkey | None: ...

    async def sign_transaction(self, transaction: Transaction) -> Transaction: ...

    async def sign_and_send(self, transaction: Transaction, submitter: Submitter) -> str: ...


def load_keypair(private_key: str) -> Keypair:
    """Load a Keypair from a base58 secret key or a JSON array of 64 bytes."""
    raw = private_key.strip()
    if not raw:
        raise ValueError("private key is empty")
    if raw.startswith("["):
        try:
            arr = json.loads(raw)
            if isinstance(arr, list) and len(arr) >= 64:
                return Keypair.from_bytes(bytes(arr[:64]))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise ValueError("Invalid private key byte array") from e
        raise ValueError("Invalid private key byte array")
    try:
        secret = base58.b58decode(raw)
        return Keypair.from_bytes(secret)
    except ValueError as e:
        logger.warning("wallet_keypair_load_failed", error=str(e))
        raise ValueError("Invalid private key") from e


class KeypairWallet:
    """Signs with a local keypair."""

    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair

    @classmethod
    def from_secret(cls, private_key: str) -> "KeypairWallet":
        return cls(load_keypair(private_key))

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        signature = self._keypair.sign_message(transaction.message_bytes())
        transaction.add_signature(self.public_key, signature)
        return transaction

    async def sign_and_send(self, transaction: Transaction, submitter: Submitter) -> str:
        signed = await self.sign_transaction(transaction)
        return await submitter.submit(signed)
