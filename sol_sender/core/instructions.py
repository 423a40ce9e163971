"""
Instruction builders: native SOL transfer, SPL token transfer, associated token
account creation and opaque program calls.

Pure data construction. Amounts go through the u64 little-endian policy in
core.amounts; callers scale human amounts before calling.
"""

from __future__ import annotations

from typing import Sequence

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import TransferParams, transfer

from sol_sender.core.amounts import check_base_units, encode_amount
from sol_sender.core.exceptions import InvalidAmount

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")

# SPL token instruction tags
TOKEN_IX_TRANSFER = 3
TOKEN_IX_TRANSFER_CHECKED = 12


def build_native_transfer(from_pubkey: Pubkey, to_pubkey: Pubkey, lamports: int) -> Instruction:
    """System program transfer of ``lamports`` from ``from_pubkey`` (signer) to ``to_pubkey``."""
    lamports = check_base_units(lamports)
    return transfer(TransferParams(from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=lamports))


def build_token_transfer(
    source: Pubkey,
    destination: Pubkey,
    authority: Pubkey,
    amount: int,
    *,
    mint: Pubkey | None = None,
    decimals: int | None = None,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """
    SPL token transfer between two token accounts.

    ``amount`` is in base units. When both ``mint`` and ``decimals`` are given
    the checked variant is used, so the token program rejects a decimals
    mismatch instead of silently moving the wrong quantity.
    """
    data = encode_amount(amount)
    if (mint is None) != (decimals is None):
        raise ValueError("mint and decimals must be given together")
    if mint is not None and decimals is not None:
        if not 0 <= decimals <= 255:
            raise InvalidAmount(amount, f"decimals out of range: {decimals}")
        accounts = [
            AccountMeta(pubkey=source, is_signer=False, is_writable=True),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ]
        payload = bytes([TOKEN_IX_TRANSFER_CHECKED]) + data + bytes([decimals])
    else:
        accounts = [
            AccountMeta(pubkey=source, is_signer=False, is_writable=True),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ]
        payload = bytes([TOKEN_IX_TRANSFER]) + data
    return Instruction(program_id=token_program_id, data=payload, accounts=accounts)


def build_create_associated_account(
    payer: Pubkey,
    associated: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    *,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
    associated_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
) -> Instruction:
    """Create the associated token account ``associated`` for (owner, mint), funded by ``payer``."""
    accounts = [
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=associated, is_signer=False, is_writable=True),
        AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=token_program_id, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=associated_program_id, data=b"", accounts=accounts)


def build_opaque_call(program_id: Pubkey, accounts: Sequence[AccountMeta], raw_amount: int) -> Instruction:
    """Call a program whose only argument is a u64 LE amount. Account order is kept as given."""
    return Instruction(program_id=program_id, data=encode_amount(raw_amount), accounts=list(accounts))


def build_program_token_transfer(
    program_id: Pubkey,
    source: Pubkey,
    destination: Pubkey,
    authority: Pubkey,
    amount: int,
    *,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """
    Token transfer routed through a custom program.

    Accounts: source token account (w), destination token account (w),
    authority (signer, w), token program (r).
    """
    accounts = [
        AccountMeta(pubkey=source, is_signer=False, is_writable=True),
        AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
        AccountMeta(pubkey=authority, is_signer=True, is_writable=True),
        AccountMeta(pubkey=token_program_id, is_signer=False, is_writable=False),
    ]
    return build_opaque_call(program_id, accounts, amount)


def touches(instruction: Instruction, address: Pubkey) -> bool:
    """True if ``address`` appears in the instruction's account list."""
    return any(meta.pubkey == address for meta in instruction.accounts)
