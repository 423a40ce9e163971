"""
Transaction model and assembly.

A Transaction is an ordered list of instructions, a fee payer and a recent
blockhash, executed atomically by the network. Assembly keeps instruction
order exactly as given; signing is a separate step done by a wallet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction as WireTransaction

from sol_sender.core.exceptions import EmptyTransaction


@dataclass
class Transaction:
    instructions: tuple[Instruction, ...]
    fee_payer: Pubkey
    recent_blockhash: Hash
    signatures: dict[Pubkey, Signature] = field(default_factory=dict)

    def message(self) -> Message:
        """Compile to the wire message (fee payer first, accounts deduplicated)."""
        return Message.new_with_blockhash(list(self.instructions), self.fee_payer, self.recent_blockhash)

    def message_bytes(self) -> bytes:
        """The bytes each signer signs."""
        return bytes(self.message())

    def required_signers(self) -> list[Pubkey]:
        msg = self.message()
        return list(msg.account_keys[: msg.header.num_required_signatures])

    def add_signature(self, signer: Pubkey, signature: Signature) -> None:
        if signer not in self.required_signers():
            raise ValueError(f"{signer} is not a required signer of this transaction")
        self.signatures[signer] = signature

    def missing_signers(self) -> list[Pubkey]:
        return [k for k in self.required_signers() if k not in self.signatures]

    def is_signed(self) -> bool:
        return not self.missing_signers()

    def to_wire(self) -> WireTransaction:
        """Wire transaction with signatures in required-signer order (defaults where missing)."""
        msg = self.message()
        signers = msg.account_keys[: msg.header.num_required_signatures]
        sigs = [self.signatures.get(k, Signature.default()) for k in signers]
        return WireTransaction.populate(msg, sigs)

    def serialize(self) -> bytes:
        return bytes(self.to_wire())

    @property
    def signature(self) -> Signature | None:
        """The fee payer's signature, which is also the transaction id."""
        return self.signatures.get(self.fee_payer)


def assemble(
    instructions: Sequence[Instruction],
    fee_payer: Pubkey,
    recent_blockhash: Hash,
) -> Transaction:
    """
    Build an unsigned transaction from ``instructions`` in the given order.

    No deduplication, reordering or merging. Callers put account creation
    ahead of any instruction that uses the new account.
    """
    if not instructions:
        raise EmptyTransaction()
    return Transaction(
        instructions=tuple(instructions),
        fee_payer=fee_payer,
        recent_blockhash=recent_blockhash,
    )
