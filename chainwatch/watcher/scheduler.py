"""
Poll scheduler: run one async tick now, then again every interval, until stopped.

A tick that outlasts the interval delays the next one instead of overlapping
it: the next cycle starts at max(previous_start + interval, previous_end).
Exceptions raised by a tick are logged and end that tick only.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from chainwatch.watch_logging import get_logger

logger = get_logger(__name__)

Tick = Callable[[], Awaitable[None]]


class Poller:
    """
    Drives `tick` on the running event loop.

    stop() may be called from any thread. A tick already in flight is allowed
    to finish; no further tick starts afterwards.
    """

    def __init__(
        self,
        tick: Tick,
        interval: float,
        *,
        emit_on_start: bool = True,
        name: str = "poller",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._tick = tick
        self._interval = float(interval)
        self._emit_on_start = emit_on_start
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopped = False
        self.tick_count = 0

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def interval(self) -> float:
        return self._interval

    def start(self) -> "Poller":
        """Schedule the poll loop on the running loop. Must be called from inside it."""
        if self._task is not None:
            raise RuntimeError(f"{self._name} already started")
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._task = self._loop.create_task(self._run(), name=self._name)
        return self

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        loop, event = self._loop, self._stop_event
        if loop is None or event is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            event.set()
        else:
            loop.call_soon_threadsafe(event.set)

    async def wait_closed(self) -> None:
        """Wait until the poll loop has exited (after stop())."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _sleep(self, delay: float) -> bool:
        """Sleep up to `delay` seconds; return True if stop was requested."""
        assert self._stop_event is not None
        if self._stopped:
            return True
        if delay <= 0:
            await asyncio.sleep(0)
            return self._stopped
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
        return self._stopped

    async def _run_tick(self) -> None:
        self.tick_count += 1
        try:
            await self._tick()
        except Exception as e:
            logger.exception("poll_tick_failed", poller=self._name, tick=self.tick_count, error=str(e))

    async def _run(self) -> None:
        assert self._loop is not None
        if not self._emit_on_start and await self._sleep(self._interval):
            return
        while not self._stopped:
            cycle_start = self._loop.time()
            await self._run_tick()
            delay = cycle_start + self._interval - self._loop.time()
            if await self._sleep(delay):
                break
        logger.debug("poll_loop_exited", poller=self._name, ticks=self.tick_count)


def poll(
    tick: Tick,
    interval: float,
    *,
    emit_on_start: bool = True,
    name: str = "poller",
) -> Callable[[], None]:
    """Start polling `tick` on the running loop; return a function that stops it."""
    poller = Poller(tick, interval, emit_on_start=emit_on_start, name=name).start()
    return poller.stop
