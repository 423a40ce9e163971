"""
sol-sender command line.

Usage:
  sol-sender balance
  sol-sender send-sol RECEIVER AMOUNT_SOL
  sol-sender split --reserve-sol 0.001 RECEIVER=0.6 RECEIVER=0.4
  sol-sender send-token RECEIVER MINT AMOUNT --decimals 9 [--program PROGRAM_ID]
  sol-sender unpack [--mint MINT] [--collector ADDRESS]

Env: SOLANA_NETWORK, SOLANA_RPC_URL, WALLET_PRIVATE_KEY, COLLECTOR_ENDPOINT,
     COLLECTOR_ADDRESS, UNPACK_MINT, UNPACK_DECIMALS, CONFIRM_TIMEOUT_SEC.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from sol_sender.config import Settings, get_settings
from sol_sender.config.env import mask_rpc_url
from sol_sender.core.amounts import sol_to_lamports, to_base_units
from sol_sender.core.exceptions import (
    ConfirmationTimedOut,
    SolSenderError,
    WalletNotConnected,
)
from sol_sender.notify import CollectorNotifier
from sol_sender.pipeline import (
    NativeTransfer,
    ProgramTokenTransfer,
    SessionContext,
    TokenTransfer,
    TransferPipeline,
    TransferRequest,
    unpack_request,
)
from sol_sender.rpc.client import SolanaRpcClient
from sol_sender.sender_logging import configure_logging, get_logger
from sol_sender.wallet import KeypairWallet

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNCONFIRMED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sol-sender", description="Send SOL and SPL tokens from a local keypair.")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("balance", help="Show wallet balance in SOL")

    p = sub.add_parser("send-sol", help="Transfer SOL")
    p.add_argument("receiver")
    p.add_argument("amount", help="Amount in SOL")

    p = sub.add_parser("split", help="Split the wallet balance between receivers")
    p.add_argument("shares", nargs="+", metavar="RECEIVER=WEIGHT")
    p.add_argument("--reserve-sol", default="0.001", help="SOL kept back for fees")

    p = sub.add_parser("send-token", help="Transfer an SPL token")
    p.add_argument("receiver")
    p.add_argument("mint")
    p.add_argument("amount", help="Amount in whole tokens")
    p.add_argument("--decimals", type=int, required=True, help="Token decimals used to scale AMOUNT")
    p.add_argument("--program", default=None, help="Route the transfer through this program id")

    p = sub.add_parser("unpack", help="Send one token to the collector and notify it")
    p.add_argument("--mint", default=None)
    p.add_argument("--collector", default=None)
    p.add_argument("--decimals", type=int, default=None)
    return parser


def _parse_shares(shares: list[str]) -> tuple[list[str], list[str]]:
    receivers, weights = [], []
    for item in shares:
        receiver, sep, weight = item.partition("=")
        if not sep:
            raise ValueError(f"expected RECEIVER=WEIGHT, got {item!r}")
        receivers.append(receiver.strip())
        weights.append(weight.strip())
    return receivers, weights


async def _build_request(
    args: argparse.Namespace,
    settings: Settings,
    pipeline: TransferPipeline,
    context: SessionContext,
) -> TransferRequest:
    if args.command == "send-sol":
        return TransferRequest(native=(NativeTransfer(args.receiver, sol_to_lamports(args.amount)),), label="send_sol")
    if args.command == "split":
        receivers, weights = _parse_shares(args.shares)
        return await pipeline.plan_balance_split(
            context, receivers, weights, reserve_lamports=sol_to_lamports(args.reserve_sol)
        )
    if args.command == "send-token":
        amount = to_base_units(args.amount, args.decimals)
        if args.program:
            return TransferRequest(
                program_transfers=(ProgramTokenTransfer(args.program, args.receiver, args.mint, amount),),
                label="program_token_transfer",
            )
        return TransferRequest(
            tokens=(TokenTransfer(args.receiver, args.mint, amount, args.decimals),),
            label="send_token",
        )
    if args.command == "unpack":
        mint = args.mint or settings.unpack_mint
        collector = args.collector or settings.collector_address
        if not mint or not collector:
            raise ValueError("unpack needs a mint and collector (flags or UNPACK_MINT / COLLECTOR_ADDRESS)")
        decimals = settings.unpack_decimals if args.decimals is None else args.decimals
        return unpack_request(mint, collector, decimals)
    raise ValueError(f"unknown command {args.command!r}")


async def run(args: argparse.Namespace, settings: Settings) -> int:
    if not settings.wallet_private_key:
        raise WalletNotConnected("WALLET_PRIVATE_KEY is not set")
    context = SessionContext(wallet=KeypairWallet.from_secret(settings.wallet_private_key))
    logger.info(
        "cli_started",
        command=args.command,
        network=settings.network,
        rpc_url=mask_rpc_url(settings.rpc_url),
    )

    async with SolanaRpcClient(settings.rpc_url, timeout_sec=settings.rpc_timeout_sec) as rpc:
        notifier = None
        if args.command == "unpack" and settings.collector_endpoint:
            notifier = CollectorNotifier(settings.collector_endpoint, timeout_sec=settings.notify_timeout_sec)
        try:
            pipeline = TransferPipeline.from_settings(settings, rpc, notifier=notifier)
            if args.command == "balance":
                balance = await pipeline.get_balance(context)
                print(f"{balance} SOL")
                return EXIT_OK
            request = await _build_request(args, settings, pipeline, context)
            result = await pipeline.run(context, request)
        finally:
            if notifier is not None:
                await notifier.aclose()

    print(f"{result.status.value}: {result.signature}")
    print(f"View on the explorer: {result.explorer_url}")
    if result.notified is False:
        print("Collector notification failed (transfer is confirmed)")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        configure_logging(level=args.log_level)
    try:
        return asyncio.run(run(args, get_settings()))
    except ConfirmationTimedOut as e:
        logger.warning("cli_unconfirmed", code=e.code, signature=e.signature, explorer_url=e.explorer_url)
        print(f"{e.message}\n{e.explorer_url}", file=sys.stderr)
        return EXIT_UNCONFIRMED
    except SolSenderError as e:
        logger.error("cli_failed", code=e.code, error=e.message)
        print(f"error: {e.message}", file=sys.stderr)
        return EXIT_ERROR
    except ValueError as e:
        logger.error("cli_invalid_input", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
