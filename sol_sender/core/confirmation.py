"""
Confirmation polling.

Status lattice: Pending -> Processed -> Confirmed -> Finalized, or terminal
Failed / TimedOut. The poller only moves forward; a lagging node reporting a
lower level than already observed does not move the status back.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from sol_sender.core.exceptions import RpcError
from sol_sender.sender_logging import get_logger

if TYPE_CHECKING:
    from sol_sender.rpc.client import SignatureStatus

logger = get_logger(__name__)

DEFAULT_CONFIRM_TIMEOUT_SEC = 60.0
DEFAULT_CONFIRM_POLL_INTERVAL_SEC = 1.0


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_success(self) -> bool:
        return self in (ConfirmationStatus.CONFIRMED, ConfirmationStatus.FINALIZED)

    @property
    def is_terminal(self) -> bool:
        return self.is_success or self in (ConfirmationStatus.FAILED, ConfirmationStatus.TIMED_OUT)


# Progress order of the non-terminal chain
_RANK = {
    ConfirmationStatus.PENDING: 0,
    ConfirmationStatus.PROCESSED: 1,
    ConfirmationStatus.CONFIRMED: 2,
    ConfirmationStatus.FINALIZED: 3,
}

_FROM_RPC = {
    "processed": ConfirmationStatus.PROCESSED,
    "confirmed": ConfirmationStatus.CONFIRMED,
    "finalized": ConfirmationStatus.FINALIZED,
}


def advance(current: ConfirmationStatus, observed: ConfirmationStatus) -> ConfirmationStatus:
    """Next status given an observation; never moves backward, terminal states stick."""
    if current in (ConfirmationStatus.FAILED, ConfirmationStatus.TIMED_OUT):
        return current
    if observed in (ConfirmationStatus.FAILED, ConfirmationStatus.TIMED_OUT):
        return observed
    return observed if _RANK[observed] > _RANK[current] else current


def classify(status: SignatureStatus | None) -> ConfirmationStatus:
    """Map one getSignatureStatuses entry to a ConfirmationStatus."""
    if status is None:
        return ConfirmationStatus.PENDING
    if status.err is not None:
        return ConfirmationStatus.FAILED
    if status.confirmation_status in _FROM_RPC:
        return _FROM_RPC[status.confirmation_status]
    # Rooted slots report confirmations=None and may omit confirmationStatus
    if status.confirmations is None:
        return ConfirmationStatus.FINALIZED
    return ConfirmationStatus.PROCESSED


class StatusSource(Protocol):
    async def get_signature_status(self, signature: str) -> SignatureStatus | None: ...


@dataclass(frozen=True)
class ConfirmationOutcome:
    """Final status of one signature; ``err`` is the on-chain error when FAILED."""

    status: ConfirmationStatus
    err: object = None


def _check_seconds(name: str, value: float) -> float:
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be positive and finite, got {value!r}")
    return value


class ConfirmationPoller:
    """
    Poll a signature at a fixed interval until it settles, fails, or the
    deadline passes. Returns the final outcome; never raises for it.

    Holds no per-call state, so one poller can serve concurrent sessions.
    """

    def __init__(
        self,
        rpc: StatusSource,
        *,
        poll_interval_sec: float = DEFAULT_CONFIRM_POLL_INTERVAL_SEC,
        timeout_sec: float = DEFAULT_CONFIRM_TIMEOUT_SEC,
    ) -> None:
        self._rpc = rpc
        self._interval = _check_seconds("poll_interval_sec", poll_interval_sec)
        self._timeout = _check_seconds("timeout_sec", timeout_sec)

    @property
    def timeout_sec(self) -> float:
        return self._timeout

    async def confirm(self, signature: str, timeout_sec: float | None = None) -> ConfirmationOutcome:
        timeout = self._timeout if timeout_sec is None else _check_seconds("timeout_sec", timeout_sec)
        deadline = time.monotonic() + timeout
        current = ConfirmationStatus.PENDING
        while True:
            try:
                observed_raw = await self._rpc.get_signature_status(signature)
            except RpcError as e:
                # Status query errors leave the status where it was; the deadline bounds the wait.
                logger.warning("confirm_poll_error", signature=signature, error=str(e))
            else:
                observed = classify(observed_raw)
                nxt = advance(current, observed)
                if nxt != current:
                    logger.debug("confirm_status_advanced", signature=signature, status=nxt.value)
                current = nxt
                if current == ConfirmationStatus.FAILED:
                    err = observed_raw.err if observed_raw is not None else None
                    logger.warning("confirm_failed", signature=signature, err=str(err))
                    return ConfirmationOutcome(current, err)
                if current.is_success:
                    logger.info("confirm_succeeded", signature=signature, status=current.value)
                    return ConfirmationOutcome(current)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self._interval, remaining))
        logger.warning("confirm_timed_out", signature=signature, timeout_sec=timeout, last_status=current.value)
        return ConfirmationOutcome(ConfirmationStatus.TIMED_OUT)
