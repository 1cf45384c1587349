"""
Observer registry: one shared watch per fingerprint, many listeners.

Responsibilities:
- Map fingerprint → running watch + ordered listener list.
- Create the watch through a factory on first join; tear it down when the
  last listener leaves.
- Fan out data/errors to every listener of a fingerprint in registration order.

All table mutations, the factory call and the teardown call happen under one
re-entrant lock, so a join never races a teardown for the same fingerprint.
"""

from __future__ import annotations

import inspect
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from chainwatch.watch_logging import get_logger

logger = get_logger(__name__)

OnData = Callable[[list[Any]], "Awaitable[None] | None"]
OnError = Callable[[BaseException], "Awaitable[None] | None"]
Teardown = Callable[[], None]


@dataclass(eq=False)
class Listener:
    """One subscriber's callback pair. Compared by identity."""

    on_data: OnData
    on_error: OnError | None = None


@dataclass
class _Entry:
    listeners: list[Listener] = field(default_factory=list)
    teardown: Teardown | None = None


async def _invoke(callback: Callable[[Any], Any], payload: Any, fingerprint: str, kind: str) -> None:
    try:
        result = callback(payload)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.exception(
            "listener_callback_failed",
            fingerprint=fingerprint[:12],
            callback=kind,
            error=str(e),
        )


class Emitter:
    """
    Fan-out for one watch; resolves its current listeners at emission time.

    Bound to the registry entry, not the fingerprint, so a torn-down watch
    never reaches the listeners of a newer watch with the same fingerprint.
    """

    def __init__(self, lock: threading.RLock, entry: _Entry, fingerprint: str) -> None:
        self._lock = lock
        self._entry = entry
        self.fingerprint = fingerprint

    def listeners(self) -> list[Listener]:
        with self._lock:
            return list(self._entry.listeners)

    async def on_data(self, records: list[Any]) -> None:
        for listener in self.listeners():
            await _invoke(listener.on_data, records, self.fingerprint, "on_data")

    async def on_error(self, error: BaseException) -> None:
        for listener in self.listeners():
            if listener.on_error is not None:
                await _invoke(listener.on_error, error, self.fingerprint, "on_error")


WatchFactory = Callable[[Emitter], Teardown]


class ObserverRegistry:
    """
    Process-wide table of shared watches.

    Construct one at application start and pass it to every EventWatcher
    that should deduplicate against the others; call close() at shutdown.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def join(self, fingerprint: str, listener: Listener, factory: WatchFactory) -> Callable[[], None]:
        """
        Register `listener` under `fingerprint`, creating the watch via
        `factory(emitter)` if none is running. Returns an idempotent unsubscribe.

        Exceptions from `factory` propagate and leave the table unchanged.
        """
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                entry = _Entry()
                entry.teardown = factory(Emitter(self._lock, entry, fingerprint))
                self._entries[fingerprint] = entry
                logger.info("watch_created", fingerprint=fingerprint[:12])
            entry.listeners.append(listener)

        left = False

        def unsubscribe() -> None:
            nonlocal left
            with self._lock:
                if left:
                    return
                left = True
                self._leave(fingerprint, listener)

        return unsubscribe

    def _leave(self, fingerprint: str, listener: Listener) -> None:
        entry = self._entries.get(fingerprint)
        if entry is None:
            return
        try:
            entry.listeners.remove(listener)
        except ValueError:
            return
        if not entry.listeners:
            del self._entries[fingerprint]
            self._teardown(fingerprint, entry)

    def _teardown(self, fingerprint: str, entry: _Entry) -> None:
        if entry.teardown is None:
            return
        try:
            entry.teardown()
        except Exception as e:
            logger.warning("watch_teardown_failed", fingerprint=fingerprint[:12], error=str(e))
        logger.info("watch_torn_down", fingerprint=fingerprint[:12])

    def listener_count(self, fingerprint: str) -> int:
        with self._lock:
            entry = self._entries.get(fingerprint)
            return len(entry.listeners) if entry else 0

    def fingerprints(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def close(self) -> None:
        """Tear down every watch. Outstanding unsubscribe handles become no-ops."""
        with self._lock:
            entries = list(self._entries.items())
            self._entries.clear()
            for fingerprint, entry in entries:
                entry.listeners.clear()
                self._teardown(fingerprint, entry)
