"""
Pytest fixtures for chainwatch tests. FakeRpcClient is an in-memory RpcClient
whose responses are scripted per test.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chainwatch.core.exceptions import UnsupportedMethodError
from chainwatch.rpc.models import FilterHandle, LogCriteria


class FakeRpcClient:
    """
    Scripted RpcClient.

    filter_changes: queue of poll_filter results (list of logs or an exception).
    positions: queue of block numbers (or exceptions); the last one repeats.
    ranges: (from_block, to_block) -> logs or exception.
    """

    def __init__(self, *, uid: str = "fake-client", polling_interval: float = 0.01) -> None:
        self.uid = uid
        self.polling_interval = polling_interval
        self.supports_filters = True
        self.create_errors: list[BaseException] = []
        self.filter_changes: list[Any] = []
        self.positions: list[Any] = [100]
        self.ranges: dict[tuple[int, int], Any] = {}
        self.release_error: BaseException | None = None
        self.delays: dict[str, float] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.released: list[str] = []
        self._next_filter = 0

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def _pause(self, name: str) -> None:
        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)

    async def create_filter(self, criteria: LogCriteria) -> FilterHandle:
        self.calls.append(("create_filter", criteria))
        await self._pause("create_filter")
        if self.create_errors:
            raise self.create_errors.pop(0)
        if not self.supports_filters:
            raise UnsupportedMethodError("eth_newFilter: method not supported", code=-32601)
        self._next_filter += 1
        return FilterHandle(id=hex(self._next_filter), criteria=criteria)

    async def poll_filter(self, handle: FilterHandle) -> list[Any]:
        self.calls.append(("poll_filter", handle.id))
        await self._pause("poll_filter")
        item = self.filter_changes.pop(0) if self.filter_changes else []
        if isinstance(item, BaseException):
            raise item
        return item

    async def fetch_range(self, criteria: LogCriteria, from_block: int, to_block: int) -> list[Any]:
        self.calls.append(("fetch_range", from_block, to_block))
        await self._pause("fetch_range")
        item = self.ranges.get((from_block, to_block), [])
        if isinstance(item, BaseException):
            raise item
        return item

    async def current_position(self) -> int:
        self.calls.append(("current_position",))
        await self._pause("current_position")
        item = self.positions.pop(0) if len(self.positions) > 1 else self.positions[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def release_filter(self, handle: FilterHandle) -> None:
        self.calls.append(("release_filter", handle.id))
        self.released.append(handle.id)
        if self.release_error is not None:
            raise self.release_error


@pytest.fixture
def fake_client() -> FakeRpcClient:
    return FakeRpcClient()


@pytest.fixture
def make_client():
    """Factory for extra FakeRpcClient instances (e.g. a second client uid)."""
    return FakeRpcClient


@pytest.fixture
def clean_env(monkeypatch):
    """Unset chainwatch variables so each test sees defaults unless it sets them."""
    for name in (
        "CHAINWATCH_RPC_URL",
        "CHAINWATCH_POLLING_INTERVAL_SEC",
        "CHAINWATCH_REQUEST_TIMEOUT_SEC",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("chainwatch.config.env.load_chainwatch_env", lambda: None)
    return monkeypatch
