"""
Associated token account resolution.

For an (owner, mint) pair the token account address is derived, never chosen:
by default the canonical Solana rule, a program-derived address over seeds
[owner, token program, mint] under the associated token account program.
Existence is network state and is re-checked on every call; when the account
is missing a creation instruction is returned for the caller to place ahead of
any instruction that touches the account.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from sol_sender.core.exceptions import AccountLookupFailed, RpcError
from sol_sender.core.instructions import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    build_create_associated_account,
)
from sol_sender.sender_logging import get_logger

logger = get_logger(__name__)

DerivationRule = Callable[[Pubkey, Pubkey], Pubkey]


class AccountInfoSource(Protocol):
    async def get_account_info(self, address: Pubkey) -> dict[str, Any] | None: ...


def associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
    associated_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
) -> Pubkey:
    """Canonical associated token account address for (owner, mint)."""
    address, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program_id), bytes(mint)],
        associated_program_id,
    )
    return address


@dataclass(frozen=True)
class TokenAccount:
    owner: Pubkey
    mint: Pubkey
    address: Pubkey
    exists: bool


@dataclass(frozen=True)
class Resolution:
    account: TokenAccount
    creation_instruction: Instruction | None

    @property
    def address(self) -> Pubkey:
        return self.account.address


class AccountResolver:
    """
    Resolve (owner, mint) to its token account, emitting a creation
    instruction when the account does not exist yet.
    """

    def __init__(
        self,
        rpc: AccountInfoSource,
        *,
        derive: DerivationRule | None = None,
        token_program_id: Pubkey = TOKEN_PROGRAM_ID,
        associated_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
    ) -> None:
        self._rpc = rpc
        self._token_program_id = token_program_id
        self._associated_program_id = associated_program_id
        self._derive = derive or (
            lambda owner, mint: associated_token_address(
                owner, mint, token_program_id, associated_program_id
            )
        )

    def derive(self, owner: Pubkey, mint: Pubkey) -> Pubkey:
        return self._derive(owner, mint)

    async def resolve(self, owner: Pubkey, mint: Pubkey, *, payer: Pubkey | None = None) -> Resolution:
        """
        Look up the token account for (owner, mint).

        ``payer`` funds the creation if one is needed; defaults to ``owner``.
        Raises AccountLookupFailed if the existence check itself fails.
        """
        address = self._derive(owner, mint)
        try:
            info = await self._rpc.get_account_info(address)
        except RpcError as e:
            logger.warning(
                "resolver_lookup_failed",
                owner=str(owner),
                mint=str(mint),
                address=str(address),
                error=str(e),
            )
            raise AccountLookupFailed(str(address), str(e)) from e

        if info is not None:
            logger.debug("resolver_account_exists", owner=str(owner), mint=str(mint), address=str(address))
            return Resolution(TokenAccount(owner, mint, address, exists=True), None)

        logger.info("resolver_account_missing", owner=str(owner), mint=str(mint), address=str(address))
        create_ix = build_create_associated_account(
            payer or owner,
            address,
            owner,
            mint,
            token_program_id=self._token_program_id,
            associated_program_id=self._associated_program_id,
        )
        return Resolution(TokenAccount(owner, mint, address, exists=False), create_ix)

    async def resolve_all(
        self,
        pairs: Iterable[tuple[Pubkey, Pubkey]],
        *,
        payer: Pubkey | None = None,
    ) -> list[Resolution]:
        """
        Resolve several pairs in order, one result per input pair.

        A pair repeated within this call is looked up once, and only its first
        occurrence carries the creation instruction, so one transaction never
        creates the same account twice.
        """
        seen: dict[tuple[Pubkey, Pubkey], Resolution] = {}
        out: list[Resolution] = []
        for owner, mint in pairs:
            key = (owner, mint)
            prior = seen.get(key)
            if prior is None:
                res = await self.resolve(owner, mint, payer=payer)
                seen[key] = res
                out.append(res)
            else:
                out.append(Resolution(prior.account, None))
        return out
