"""
Application-level exceptions.

Every error the transfer pipeline can raise derives from SolSenderError and
carries a stable ``code`` for logs and CLI exit handling. Validation errors
(InvalidAddress, InvalidAmount, EmptyTransaction) are raised before any
network call.
"""

from __future__ import annotations


class SolSenderError(Exception):
    """Base class for all transfer pipeline errors."""

    code = "sol_sender_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidAddress(SolSenderError):
    """Input is not a well-formed base58 encoded 32-byte address."""

    code = "invalid_address"

    def __init__(self, value: object, reason: str) -> None:
        shown = str(value)
        if len(shown) > 64:
            shown = shown[:64] + "..."
        super().__init__(f"Invalid address {shown!r}: {reason}")
        self.value = value
        self.reason = reason


class WalletNotConnected(SolSenderError):
    code = "wallet_not_connected"

    def __init__(self, message: str = "No wallet connected") -> None:
        super().__init__(message)


class SessionBusy(SolSenderError):
    """A transfer is already in flight for this session."""

    code = "session_busy"

    def __init__(self, message: str = "A transaction is already in progress") -> None:
        super().__init__(message)


class RpcError(SolSenderError):
    """Transport failure or JSON-RPC error object returned by the node."""

    code = "rpc_error"

    def __init__(self, method: str, message: str, rpc_code: int | None = None) -> None:
        super().__init__(f"Solana RPC {method} failed: {message}" + (f" (code={rpc_code})" if rpc_code is not None else ""))
        self.method = method
        self.rpc_code = rpc_code


class AccountLookupFailed(SolSenderError):
    """The existence check itself failed; says nothing about whether the account exists."""

    code = "account_lookup_failed"

    def __init__(self, address: str, message: str) -> None:
        super().__init__(f"Account lookup failed for {address}: {message}")
        self.address = address


class InvalidAmount(SolSenderError):
    code = "invalid_amount"

    def __init__(self, amount: object, reason: str) -> None:
        super().__init__(f"Invalid amount {amount!r}: {reason}")
        self.amount = amount
        self.reason = reason


class EmptyTransaction(SolSenderError):
    code = "empty_transaction"

    def __init__(self, message: str = "Transaction has no instructions") -> None:
        super().__init__(message)


class SubmissionFailed(SolSenderError):
    code = "submission_failed"


class ConfirmationFailed(SolSenderError):
    """The network executed the transaction and reported an error. Nothing was committed."""

    code = "confirmation_failed"

    def __init__(self, signature: str, err: object, explorer_url: str | None = None) -> None:
        super().__init__(f"Transaction {signature} failed: {err}")
        self.signature = signature
        self.err = err
        self.explorer_url = explorer_url


class ConfirmationTimedOut(SolSenderError):
    """
    The deadline passed before the transaction settled.

    The outcome is unknown: the transaction may still land, so callers must not
    assume the funds did not move.
    """

    code = "confirmation_timed_out"

    def __init__(self, signature: str, timeout_sec: float, explorer_url: str | None = None) -> None:
        super().__init__(
            f"Could not confirm transaction {signature} within {timeout_sec:g}s; check the explorer"
        )
        self.signature = signature
        self.timeout_sec = timeout_sec
        self.explorer_url = explorer_url


class SideEffectNotifyFailed(SolSenderError):
    """Collector notification failed after on-chain success. Logged, never surfaced."""

    code = "side_effect_notify_failed"
