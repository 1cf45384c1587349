"""Port (interface) the watcher requires from a remote-call layer."""

from __future__ import annotations

from typing import Any, Protocol

from chainwatch.rpc.models import FilterHandle, LogCriteria


class RpcClient(Protocol):
    """
    Remote operations required by the watcher.

    Every operation may raise chainwatch.core.exceptions.RemoteError; its
    `kind` tells the watcher whether a filter was invalidated or unsupported.
    """

    uid: str
    polling_interval: float

    async def create_filter(self, criteria: LogCriteria) -> FilterHandle:
        ...

    async def poll_filter(self, handle: FilterHandle) -> list[Any]:
        ...

    async def fetch_range(self, criteria: LogCriteria, from_block: int, to_block: int) -> list[Any]:
        ...

    async def current_position(self) -> int:
        ...

    async def release_filter(self, handle: FilterHandle) -> None:
        ...
