"""
Watch: the shared runtime unit behind one fingerprint.

Owns the poll scheduler and the filter lifecycle; each tick steps the
lifecycle and hands records or the error to the fan-out emitter.
"""

from __future__ import annotations

import asyncio

from chainwatch.rpc.models import LogCriteria
from chainwatch.rpc.ports import RpcClient
from chainwatch.watch_logging import bind_watch
from chainwatch.watcher.emission import deliver
from chainwatch.watcher.filter_state import FilterLifecycle
from chainwatch.watcher.registry import Emitter
from chainwatch.watcher.scheduler import Poller


class Watch:
    def __init__(
        self,
        client: RpcClient,
        criteria: LogCriteria,
        emitter: Emitter,
        *,
        batch: bool,
        polling_interval: float,
    ) -> None:
        self.fingerprint = emitter.fingerprint
        self.lifecycle = FilterLifecycle(client, criteria, fingerprint=self.fingerprint)
        self._emitter = emitter
        self._batch = batch
        self._log = bind_watch(__name__, self.fingerprint)
        self._poller = Poller(
            self.tick,
            polling_interval,
            emit_on_start=True,
            name=f"watch:{self.fingerprint[:12]}",
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closing: asyncio.Task[None] | None = None

    @property
    def poller(self) -> Poller:
        return self._poller

    def start(self) -> "Watch":
        self._loop = asyncio.get_running_loop()
        self._poller.start()
        return self

    async def tick(self) -> None:
        result = await self.lifecycle.step()
        if result.error is not None:
            self._log.debug("watch_tick_error", state=self.lifecycle.state.value, error=str(result.error))
            await self._emitter.on_error(result.error)
            return
        calls = await deliver(result.records, batch=self._batch, emitter=self._emitter)
        if calls:
            self._log.debug("watch_records_delivered", records=len(result.records), calls=calls)

    def teardown(self) -> None:
        """Stop ticking and release the remote filter in the background."""
        self._poller.stop()
        loop = self._loop
        if loop is None or loop.is_closed():
            self.lifecycle.closed = True
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._spawn_close()
        else:
            loop.call_soon_threadsafe(self._spawn_close)

    def _spawn_close(self) -> None:
        if self._closing is None:
            assert self._loop is not None
            self._closing = self._loop.create_task(self.lifecycle.close())

    async def wait_closed(self) -> None:
        """Wait for the poll loop to exit and the filter release to settle."""
        await self._poller.wait_closed()
        if self._closing is not None:
            await asyncio.gather(self._closing, return_exceptions=True)
