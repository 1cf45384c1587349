"""
Watch fingerprints: deterministic identity of a subscription's parameters.

Two subscriptions with equal fingerprints share one running watch. The
identity is built from the literal JSON serialization of the parameters, so
mappings with the same entries in a different order produce different
fingerprints.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from typing import Any


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    return str(value)


def stringify(value: Any) -> str:
    """Serialize to JSON, keeping key order as given and stringifying non-JSON values."""
    return json.dumps(value, default=_json_default, separators=(",", ":"))


def build_fingerprint(
    operation: str,
    *,
    address: Any = None,
    args: Any = None,
    batch: bool = True,
    client_uid: str,
    event: Any = None,
    polling_interval: float,
) -> str:
    """
    Return the SHA-256 hex fingerprint of the identity-relevant parameters.

    Callbacks and the strict flag are intentionally absent.
    """
    payload = stringify([operation, address, args, batch, client_uid, event, polling_interval])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
