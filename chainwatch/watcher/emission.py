"""Emission policy: one batched delivery per tick, or one delivery per record."""

from __future__ import annotations

from typing import Any, Sequence

from chainwatch.watcher.registry import Emitter


async def deliver(records: Sequence[Any], *, batch: bool, emitter: Emitter) -> int:
    """
    Deliver a tick's records through `emitter`; return the number of on_data calls.

    Non-batched delivery passes each record as a one-element list, record by
    record, to every listener.
    """
    if not records:
        return 0
    if batch:
        await emitter.on_data(list(records))
        return 1
    for record in records:
        await emitter.on_data([record])
    return len(records)
