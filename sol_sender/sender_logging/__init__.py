"""
Structured logging for sol_sender.

Use get_logger() in every module; bind_wallet() for per-wallet context.
"""

from sol_sender.sender_logging.logger import bind_wallet, configure_logging, get_logger

__all__ = ["bind_wallet", "configure_logging", "get_logger"]
