"""Send a signed transaction once. No retries: a failed send needs a fresh transaction."""

from __future__ import annotations

from typing import Protocol

from sol_sender.core.exceptions import RpcError, SubmissionFailed
from sol_sender.core.transaction import Transaction
from sol_sender.sender_logging import get_logger

logger = get_logger(__name__)


class TransactionSender(Protocol):
    async def send_transaction(self, wire: bytes) -> str: ...


class Submitter:
    def __init__(self, rpc: TransactionSender) -> None:
        self._rpc = rpc

    async def submit(self, transaction: Transaction) -> str:
        missing = transaction.missing_signers()
        if missing:
            raise SubmissionFailed(
                "transaction is not signed by " + ", ".join(str(k) for k in missing)
            )
        try:
            signature = await self._rpc.send_transaction(transaction.serialize())
        except RpcError as e:
            logger.error(
                "submit_failed",
                fee_payer=str(transaction.fee_payer),
                instruction_count=len(transaction.instructions),
                error=str(e),
            )
            raise SubmissionFailed(str(e)) from e
        logger.info(
            "submit_sent",
            signature=signature,
            fee_payer=str(transaction.fee_payer),
            instruction_count=len(transaction.instructions),
        )
        return signature
