"""
Application settings.

Responsibilities:
- Resolve configuration from environment variables and .env files.
- Provide defaults for optional values and validate numeric ones.
- Expose typed settings (RPC URL, polling interval, request timeout)
  for the JSON-RPC client, the watcher service and the runner.
"""

from __future__ import annotations

from dataclasses import dataclass

from chainwatch.config.env import (
    get_polling_interval,
    get_request_timeout,
    get_rpc_url,
)


@dataclass(frozen=True)
class Settings:
    """Resolved chainwatch settings."""

    rpc_url: str
    polling_interval_sec: float
    request_timeout_sec: float


def get_settings() -> Settings:
    """
    Return the current settings, read fresh from the environment.

    Raises:
        ValueError: if a numeric variable cannot be parsed.
    """
    return Settings(
        rpc_url=get_rpc_url(),
        polling_interval_sec=get_polling_interval(),
        request_timeout_sec=get_request_timeout(),
    )
