"""
Transfer pipeline: validate -> resolve token accounts -> build -> assemble ->
sign -> submit -> confirm -> (unpack) notify collector.

One attempt at a time per SessionContext. Every failure aborts the attempt,
clears the busy flag and needs a fresh user-initiated run; a half-built or
unconfirmed transaction is never resubmitted because its blockhash may have
expired.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterator, Protocol, Sequence

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from sol_sender.config.settings import DEFAULT_EXPLORER_BASE_URL, Settings
from sol_sender.core.address import AddressCodec
from sol_sender.core.amounts import check_base_units, lamports_to_sol, split_lamports, to_base_units
from sol_sender.core.confirmation import ConfirmationPoller, ConfirmationStatus
from sol_sender.core.exceptions import (
    ConfirmationFailed,
    ConfirmationTimedOut,
    EmptyTransaction,
    InvalidAmount,
    RpcError,
    SessionBusy,
    SubmissionFailed,
    WalletNotConnected,
)
from sol_sender.core.instructions import (
    build_native_transfer,
    build_program_token_transfer,
    build_token_transfer,
)
from sol_sender.core.resolver import AccountResolver, Resolution
from sol_sender.core.submitter import Submitter
from sol_sender.core.transaction import Transaction, assemble
from sol_sender.notify import CollectorNotifier
from sol_sender.rpc.client import LatestBlockhash, SignatureStatus
from sol_sender.sender_logging import bind_wallet, get_logger
from sol_sender.wallet import WalletCapability

logger = get_logger(__name__)


class LedgerRpc(Protocol):
    async def get_balance(self, address: Pubkey) -> int: ...

    async def get_account_info(self, address: Pubkey) -> dict[str, Any] | None: ...

    async def get_latest_blockhash(self) -> LatestBlockhash: ...

    async def send_transaction(self, wire: bytes) -> str: ...

    async def get_signature_status(self, signature: str) -> SignatureStatus | None: ...


# --- Requests ---


@dataclass(frozen=True)
class NativeTransfer:
    receiver: Pubkey | str
    lamports: int


@dataclass(frozen=True)
class TokenTransfer:
    """SPL transfer of ``amount`` base units; ``decimals`` selects the checked variant."""

    receiver: Pubkey | str
    mint: Pubkey | str
    amount: int
    decimals: int | None = None


@dataclass(frozen=True)
class ProgramTokenTransfer:
    """Token transfer executed by a custom program taking a u64 LE amount."""

    program_id: Pubkey | str
    receiver: Pubkey | str
    mint: Pubkey | str
    amount: int


@dataclass(frozen=True)
class TransferRequest:
    native: Sequence[NativeTransfer] = ()
    tokens: Sequence[TokenTransfer] = ()
    program_transfers: Sequence[ProgramTokenTransfer] = ()
    notify_collector: bool = False
    label: str = "transfer"

    def is_empty(self) -> bool:
        return not (self.native or self.tokens or self.program_transfers)


def unpack_request(mint: Pubkey | str, collector: Pubkey | str, decimals: int = 0) -> TransferRequest:
    """Move one whole token of ``mint`` to ``collector`` and notify the collector service."""
    return TransferRequest(
        tokens=(TokenTransfer(receiver=collector, mint=mint, amount=to_base_units(1, decimals), decimals=decimals),),
        notify_collector=True,
        label="unpack",
    )


# --- Session and results ---


@dataclass
class SessionContext:
    """Per-user session state: the connected wallet and the busy flag."""

    wallet: WalletCapability | None = None
    busy: bool = False
    refresh_count: int = 0
    last_result: "TransferResult | None" = None

    def require_wallet(self) -> tuple[WalletCapability, Pubkey]:
        if self.wallet is None or self.wallet.public_key is None:
            raise WalletNotConnected()
        return self.wallet, self.wallet.public_key

    @contextmanager
    def hold(self) -> Iterator["SessionContext"]:
        """Hold the busy flag for one attempt; reject a second concurrent attempt."""
        if self.busy:
            raise SessionBusy()
        self.busy = True
        try:
            yield self
        finally:
            self.busy = False
            self.refresh_count += 1


@dataclass(frozen=True)
class PreparedTransfer:
    transaction: Transaction
    resolutions: tuple[Resolution, ...] = ()
    last_valid_block_height: int | None = None

    @property
    def created_accounts(self) -> tuple[Pubkey, ...]:
        return tuple(r.address for r in self.resolutions if r.creation_instruction is not None)


@dataclass(frozen=True)
class TransferResult:
    signature: str
    status: ConfirmationStatus
    explorer_url: str
    created_accounts: tuple[Pubkey, ...] = ()
    notified: bool | None = None  # None when the request asked for no notification


def explorer_link(signature: str, network: str, base_url: str = DEFAULT_EXPLORER_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/tx/{signature}?cluster={network}"


@dataclass(frozen=True)
class _ValidatedRequest:
    native: tuple[tuple[Pubkey, int], ...]
    tokens: tuple[tuple[Pubkey, Pubkey, int, int | None], ...]
    program_transfers: tuple[tuple[Pubkey, Pubkey, Pubkey, int], ...]


def _check_decimals(decimals: int | None) -> int | None:
    if decimals is not None and not 0 <= decimals <= 255:
        raise InvalidAmount(decimals, "decimals must be between 0 and 255")
    return decimals


def validate_request(request: TransferRequest) -> _ValidatedRequest:
    """Parse every address and check every amount. No network access."""
    if request.is_empty():
        raise EmptyTransaction("Transfer request has nothing to send")
    coerce = AddressCodec.coerce
    native = tuple((coerce(n.receiver), check_base_units(n.lamports)) for n in request.native)
    tokens = tuple(
        (coerce(t.receiver), coerce(t.mint), check_base_units(t.amount), _check_decimals(t.decimals))
        for t in request.tokens
    )
    programs = tuple(
        (coerce(p.program_id), coerce(p.receiver), coerce(p.mint), check_base_units(p.amount))
        for p in request.program_transfers
    )
    return _ValidatedRequest(native, tokens, programs)


class TransferPipeline:
    """
    Runs transfer requests for a session.

    Collaborators are injected so tests (and other networks) can replace the
    RPC, the derivation rule inside the resolver, or the notifier.
    """

    def __init__(
        self,
        rpc: LedgerRpc,
        *,
        resolver: AccountResolver | None = None,
        submitter: Submitter | None = None,
        poller: ConfirmationPoller | None = None,
        notifier: CollectorNotifier | None = None,
        network: str = "devnet",
        explorer_base_url: str = DEFAULT_EXPLORER_BASE_URL,
    ) -> None:
        self._rpc = rpc
        self._resolver = resolver or AccountResolver(rpc)
        self._submitter = submitter or Submitter(rpc)
        self._poller = poller or ConfirmationPoller(rpc)
        self._notifier = notifier
        self._network = network
        self._explorer_base_url = explorer_base_url

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        rpc: LedgerRpc,
        *,
        notifier: CollectorNotifier | None = None,
    ) -> "TransferPipeline":
        poller = ConfirmationPoller(
            rpc,
            poll_interval_sec=settings.confirm_poll_interval_sec,
            timeout_sec=settings.confirm_timeout_sec,
        )
        return cls(
            rpc,
            poller=poller,
            notifier=notifier,
            network=settings.network,
            explorer_base_url=settings.explorer_base_url,
        )

    def explorer_link(self, signature: str) -> str:
        return explorer_link(signature, self._network, self._explorer_base_url)

    async def get_balance(self, context: SessionContext) -> Decimal:
        """Wallet balance in SOL."""
        _, owner = context.require_wallet()
        lamports = await self._rpc.get_balance(owner)
        return lamports_to_sol(lamports)

    async def plan_balance_split(
        self,
        context: SessionContext,
        receivers: Sequence[Pubkey | str],
        weights: Sequence[str | Decimal],
        *,
        reserve_lamports: int = 1_000_000,
    ) -> TransferRequest:
        """
        Native transfers that split the current balance, less a fee reserve,
        between ``receivers`` by ``weights`` (fractions summing to at most 1).
        """
        if len(receivers) != len(weights):
            raise ValueError("receivers and weights must have the same length")
        parsed = [AddressCodec.coerce(r) for r in receivers]
        _, owner = context.require_wallet()
        balance = await self._rpc.get_balance(owner)
        shares = split_lamports(balance, weights, reserve_lamports)
        logger.info("pipeline_balance_split_planned", wallet_id=str(owner), balance=balance, shares=shares)
        return TransferRequest(
            native=tuple(NativeTransfer(r, s) for r, s in zip(parsed, shares) if s > 0),
            label="balance_split",
        )

    async def prepare(self, context: SessionContext, request: TransferRequest) -> PreparedTransfer:
        """Validate, resolve token accounts and assemble an unsigned transaction."""
        _, owner = context.require_wallet()
        validated = validate_request(request)
        log = bind_wallet(str(owner), label=request.label)

        pairs: list[tuple[Pubkey, Pubkey]] = []
        for receiver, mint, _, _ in validated.tokens:
            pairs.extend([(owner, mint), (receiver, mint)])
        for _, receiver, mint, _ in validated.program_transfers:
            pairs.extend([(owner, mint), (receiver, mint)])
        resolutions = await self._resolver.resolve_all(pairs, payer=owner)
        accounts = iter(resolutions)

        creations: list[Instruction] = [
            r.creation_instruction for r in resolutions if r.creation_instruction is not None
        ]
        transfers: list[Instruction] = [
            build_native_transfer(owner, receiver, lamports) for receiver, lamports in validated.native
        ]
        for _, mint, amount, decimals in validated.tokens:
            source, destination = next(accounts), next(accounts)
            transfers.append(
                build_token_transfer(
                    source.address,
                    destination.address,
                    owner,
                    amount,
                    mint=mint if decimals is not None else None,
                    decimals=decimals,
                )
            )
        for program_id, _, _, amount in validated.program_transfers:
            source, destination = next(accounts), next(accounts)
            transfers.append(
                build_program_token_transfer(program_id, source.address, destination.address, owner, amount)
            )

        try:
            latest = await self._rpc.get_latest_blockhash()
        except RpcError as e:
            log.error("pipeline_blockhash_failed", error=str(e))
            raise SubmissionFailed(f"could not fetch a recent blockhash: {e}") from e

        # Creation goes first so every later instruction sees the new accounts
        transaction = assemble(creations + transfers, owner, latest.blockhash)
        log.info(
            "pipeline_prepared",
            instruction_count=len(transaction.instructions),
            created_accounts=[str(r.address) for r in resolutions if r.creation_instruction is not None],
        )
        return PreparedTransfer(transaction, tuple(resolutions), latest.last_valid_block_height)

    async def execute(
        self,
        context: SessionContext,
        prepared: PreparedTransfer,
        request: TransferRequest,
    ) -> TransferResult:
        """Sign, submit, confirm, and notify the collector if the request asks for it."""
        wallet, owner = context.require_wallet()
        log = bind_wallet(str(owner), label=request.label)

        signed = await wallet.sign_transaction(prepared.transaction)
        signature = await self._submitter.submit(signed)
        url = self.explorer_link(signature)
        log.info("pipeline_submitted", signature=signature, explorer_url=url)

        outcome = await self._poller.confirm(signature)
        status = outcome.status
        if status == ConfirmationStatus.FAILED:
            log.warning("pipeline_confirmation_failed", signature=signature)
            raise ConfirmationFailed(signature, outcome.err, url)
        if status == ConfirmationStatus.TIMED_OUT:
            log.warning("pipeline_confirmation_timed_out", signature=signature)
            raise ConfirmationTimedOut(signature, self._poller.timeout_sec, url)

        notified: bool | None = None
        if request.notify_collector:
            if self._notifier is None:
                log.warning("pipeline_notifier_missing", signature=signature)
                notified = False
            else:
                notified = await self._notifier.notify(str(owner))

        log.info("pipeline_completed", signature=signature, status=status.value)
        return TransferResult(
            signature=signature,
            status=status,
            explorer_url=url,
            created_accounts=prepared.created_accounts,
            notified=notified,
        )

    async def run(self, context: SessionContext, request: TransferRequest) -> TransferResult:
        """Full attempt under the session busy flag."""
        context.require_wallet()
        with context.hold():
            prepared = await self.prepare(context, request)
            result = await self.execute(context, prepared, request)
            context.last_result = result
            return result

