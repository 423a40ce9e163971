"""
structlog setup for sol_sender.

Every record carries timestamp, level, event_type and the module logger name;
pipeline records also carry wallet_id and, once known, the transfer label and
signature. Output goes to stderr so CLI results on stdout stay parseable.

Env: LOG_LEVEL (default INFO), LOG_FORMAT=json|console (default json).

No sol_sender imports here; every other module imports this one.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

import structlog

_SECRET_KEYS = frozenset({"private_key", "wallet_private_key", "secret", "api_key"})
_NOISY_LIBRARIES = ("httpx", "httpcore")


def _timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _redact_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in _SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    (Re)configure structlog. Called once on import with env defaults; the CLI
    calls it again when given --log-level.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()
    out = stream or sys.stderr

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        _timestamp,
        _redact_secrets,
        _event_type,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=out.isatty(), event_key="event_type"))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=False,
    )
    # httpx logs every request at INFO through stdlib logging
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(max(level_value, logging.WARNING))


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> Any:
    """
    Structured logger for a module:

        logger = get_logger(__name__)
        logger.info("submit_sent", signature=sig, instruction_count=2)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet_id: str, **context: Any) -> Any:
    """Pipeline logger with wallet_id (and any extra context) on every record."""
    return get_logger("sol_sender.pipeline").bind(wallet_id=wallet_id, **context)
