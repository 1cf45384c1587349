"""
Environment variable loading for chainwatch.

- CHAINWATCH_RPC_URL: JSON-RPC endpoint (default: local node)
- CHAINWATCH_POLLING_INTERVAL_SEC: default polling interval for watches
- CHAINWATCH_REQUEST_TIMEOUT_SEC: HTTP timeout per RPC request
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is chainwatch/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_POLLING_INTERVAL_SEC = 4.0
DEFAULT_REQUEST_TIMEOUT_SEC = 30.0
MIN_POLLING_INTERVAL_SEC = 0.1


def load_chainwatch_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def _get_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def get_rpc_url() -> str:
    """Return CHAINWATCH_RPC_URL, or the local node default."""
    load_chainwatch_env()
    url = (os.getenv("CHAINWATCH_RPC_URL") or "").strip()
    return url or DEFAULT_RPC_URL


def get_polling_interval() -> float:
    """Return default polling interval in seconds, clamped to MIN_POLLING_INTERVAL_SEC."""
    load_chainwatch_env()
    value = _get_float("CHAINWATCH_POLLING_INTERVAL_SEC", DEFAULT_POLLING_INTERVAL_SEC)
    return max(MIN_POLLING_INTERVAL_SEC, value)


def get_request_timeout() -> float:
    load_chainwatch_env()
    value = _get_float("CHAINWATCH_REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC)
    return max(MIN_POLLING_INTERVAL_SEC, value)


def mask_rpc_url(url: str) -> str:
    """Hide API keys embedded in RPC URLs before logging them."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
