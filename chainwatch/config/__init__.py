"""
Configuration management for chainwatch.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for RPC endpoint and polling defaults.
"""

from chainwatch.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
