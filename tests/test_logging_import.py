"""
Test that sender_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from sender_logging and use the logger."""
    from sol_sender.sender_logging import bind_wallet, get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")
    bind_wallet("WalletAddr111").info("test_bound_message")
