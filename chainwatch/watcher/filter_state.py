"""
Per-watch filter lifecycle.

A watch prefers a provider-side filter and polls it for changes. When filter
creation fails the watch falls back, for the rest of its life, to block-range
queries driven by the chain head. An invalidated filter sends the watch back
to UNINITIALIZED so the next tick creates a fresh one.

    UNINITIALIZED --create ok--> ACTIVE --invalid filter--> UNINITIALIZED
          |
          +--create failed--> UNAVAILABLE (sticky)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from chainwatch.core.exceptions import ErrorKind, RemoteError
from chainwatch.rpc.models import FilterHandle, LogCriteria
from chainwatch.rpc.ports import RpcClient
from chainwatch.watch_logging import bind_watch


class FilterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    UNAVAILABLE = "unavailable"


# Next state after a failed poll of an ACTIVE filter, by error kind
ACTIVE_FAILURE_TRANSITIONS: dict[ErrorKind, FilterState] = {
    ErrorKind.INVALID_FILTER: FilterState.UNINITIALIZED,
    ErrorKind.UNSUPPORTED: FilterState.ACTIVE,
    ErrorKind.TRANSPORT: FilterState.ACTIVE,
    ErrorKind.OTHER: FilterState.ACTIVE,
}


def error_kind(error: BaseException) -> ErrorKind:
    if isinstance(error, RemoteError):
        return error.kind
    return ErrorKind.OTHER


@dataclass
class StepResult:
    """Outcome of one tick: records to deliver, or the error to report."""

    records: list[Any] = field(default_factory=list)
    error: BaseException | None = None


class FilterLifecycle:
    """State machine driven once per tick by the owning watch."""

    def __init__(self, client: RpcClient, criteria: LogCriteria, *, fingerprint: str = "") -> None:
        self._client = client
        self._criteria = criteria
        self._log = bind_watch(__name__, fingerprint)
        self.state = FilterState.UNINITIALIZED
        self.handle: FilterHandle | None = None
        self.marker: int | None = None
        self.closed = False

    async def step(self) -> StepResult:
        if self.state is FilterState.UNINITIALIZED:
            return await self._initialize()
        if self.state is FilterState.ACTIVE:
            return await self._poll_filter()
        return await self._poll_range()

    async def _initialize(self) -> StepResult:
        try:
            handle = await self._client.create_filter(self._criteria)
        except Exception as e:
            # Expected when the provider has no filter support; never reported.
            self.state = FilterState.UNAVAILABLE
            self._log.info("filter_unavailable", kind=error_kind(e).value, error=str(e))
            return await self._poll_range()
        if self.closed:
            await self._release(handle)
            return StepResult()
        self.handle = handle
        self.state = FilterState.ACTIVE
        self._log.info("filter_created", filter_id=handle.id)
        return StepResult()

    async def _poll_filter(self) -> StepResult:
        handle = self.handle
        assert handle is not None
        try:
            records = await self._client.poll_filter(handle)
        except Exception as e:
            if self.closed:
                # torn down mid-poll; the handle was already released
                return StepResult()
            kind = error_kind(e)
            self.state = ACTIVE_FAILURE_TRANSITIONS[kind]
            if self.state is FilterState.UNINITIALIZED:
                self._log.warning("filter_invalidated", filter_id=handle.id, error=str(e))
                self.handle = None
            return StepResult(error=e)
        if self.closed:
            return StepResult()
        return StepResult(records=list(records))

    async def _poll_range(self) -> StepResult:
        try:
            current = await self._client.current_position()
            records: list[Any] = []
            # a lower height (lagging node, reorg) moves the marker back without fetching
            if self.marker is not None and current > self.marker:
                records = await self._client.fetch_range(self._criteria, self.marker + 1, current)
        except Exception as e:
            # marker unchanged: the next tick retries the same range
            return StepResult(error=e)
        self.marker = current
        return StepResult(records=list(records))

    async def _release(self, handle: FilterHandle) -> None:
        try:
            await self._client.release_filter(handle)
        except Exception as e:
            self._log.debug("filter_release_failed", filter_id=handle.id, error=str(e))

    async def close(self) -> None:
        """Mark closed and release the active filter, if any. Never raises."""
        self.closed = True
        handle, self.handle = self.handle, None
        if handle is not None:
            await self._release(handle)
