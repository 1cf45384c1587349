"""
Data models shared between the watcher and RPC adapters.

Log records themselves are opaque (raw JSON-RPC dicts); only the query side
is modelled here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EventDescriptor:
    """
    Typed event the watch is restricted to.

    `topic` is the pre-computed event selector (topic0). ABI encoding is the
    caller's concern; `name` and `inputs` only serve identification.
    """

    name: str
    topic: str
    inputs: tuple[str, ...] = ()


@dataclass(frozen=True)
class LogCriteria:
    """What a watch matches: contract address(es), event and argument filter."""

    address: str | list[str] | None = None
    event: EventDescriptor | None = None
    args: Any = None
    strict: bool = False


@dataclass(frozen=True)
class FilterHandle:
    """Provider-side filter id returned by filter creation."""

    id: str
    criteria: LogCriteria
