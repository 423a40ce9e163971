"""
Configuration for sol_sender.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for RPC, polling and unpack configuration.
"""

from sol_sender.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
