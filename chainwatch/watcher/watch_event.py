"""
watch_event: subscribe to new event logs matching an address/event filter.

Responsibilities:
- Validate subscription parameters and resolve the polling interval.
- Fingerprint the subscription and join (or start) the shared watch.
- EventWatcher: service object bundling a client, a registry and defaults,
  with explicit close()/aclose() for shutdown.

With a provider that supports filters, a filter is created on the first tick
(eth_newFilter) and polled for changes (eth_getFilterChanges) afterwards.
Without filter support, each tick reads the block number and fetches logs
for the blocks since the previous tick (eth_getLogs).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from chainwatch.rpc.models import EventDescriptor, LogCriteria
from chainwatch.rpc.ports import RpcClient
from chainwatch.watch_logging import get_logger
from chainwatch.watcher.fingerprint import build_fingerprint
from chainwatch.watcher.registry import Emitter, Listener, ObserverRegistry, OnData, OnError
from chainwatch.watcher.watch import Watch

logger = get_logger(__name__)

OPERATION = "watchEvent"


@dataclass(frozen=True)
class WatchEventParameters:
    """
    Subscription parameters.

    on_logs: called with a list of new logs (sync or async).
    on_error: called with the error of a failed tick; optional.
    address: contract address or list of addresses to match.
    event: event descriptor to restrict logs to; required for args/strict.
    args: indexed argument filter for `event`.
    strict: whether logs must match the event's arguments exactly. Defaults to False.
    batch: deliver a tick's logs in one call (True) or one call per log.
    polling_interval: seconds between ticks; falls back to the watcher/client default.
    """

    on_logs: OnData
    on_error: OnError | None = None
    address: str | list[str] | None = None
    event: EventDescriptor | None = None
    args: Any = None
    strict: bool | None = None
    batch: bool = True
    polling_interval: float | None = None

    def __post_init__(self) -> None:
        if not callable(self.on_logs):
            raise ValueError("on_logs must be callable")
        if self.on_error is not None and not callable(self.on_error):
            raise ValueError("on_error must be callable")
        if self.event is None and (self.args is not None or self.strict is not None):
            raise ValueError("args and strict require an event descriptor")
        if self.polling_interval is not None and self.polling_interval <= 0:
            raise ValueError("polling_interval must be positive")


def watch_event(
    client: RpcClient,
    registry: ObserverRegistry,
    params: WatchEventParameters,
    *,
    default_interval: float | None = None,
    on_watch_created: Callable[[Watch], None] | None = None,
) -> Callable[[], None]:
    """
    Watch for new logs; return an idempotent function that stops this subscription.

    Must be called from inside a running event loop. Subscriptions whose
    address, event, args, batch, client and interval are equal share a single
    watch, whose strict flag is taken from the first subscriber.
    """
    interval = params.polling_interval or default_interval or client.polling_interval
    fingerprint = build_fingerprint(
        OPERATION,
        address=params.address,
        args=params.args,
        batch=params.batch,
        client_uid=client.uid,
        event=params.event,
        polling_interval=interval,
    )
    criteria = LogCriteria(
        address=params.address,
        event=params.event,
        args=params.args,
        strict=bool(params.strict),
    )

    def factory(emitter: Emitter) -> Callable[[], None]:
        watch = Watch(client, criteria, emitter, batch=params.batch, polling_interval=interval).start()
        if on_watch_created is not None:
            on_watch_created(watch)
        return watch.teardown

    return registry.join(fingerprint, Listener(params.on_logs, params.on_error), factory)


class EventWatcher:
    """
    Subscription service for one RPC client.

    Pass a shared ObserverRegistry to deduplicate across several watchers;
    by default each watcher owns a private one.
    """

    def __init__(
        self,
        client: RpcClient,
        *,
        registry: ObserverRegistry | None = None,
        polling_interval: float | None = None,
    ) -> None:
        if polling_interval is not None and polling_interval <= 0:
            raise ValueError("polling_interval must be positive")
        self.client = client
        self.registry = registry if registry is not None else ObserverRegistry()
        self._polling_interval = polling_interval
        self._subscriptions: set[Callable[[], None]] = set()
        self._watches: list[Watch] = []

    def watch_event(self, on_logs: OnData, **kwargs: Any) -> Callable[[], None]:
        params = WatchEventParameters(on_logs=on_logs, **kwargs)
        unsubscribe = watch_event(
            self.client,
            self.registry,
            params,
            default_interval=self._polling_interval,
            on_watch_created=self._track,
        )

        def unwatch() -> None:
            self._subscriptions.discard(unwatch)
            unsubscribe()

        self._subscriptions.add(unwatch)
        return unwatch

    def _track(self, watch: Watch) -> None:
        self._watches = [w for w in self._watches if not w.poller.stopped]
        self._watches.append(watch)

    def close(self) -> None:
        """Unsubscribe everything this watcher registered."""
        for unwatch in list(self._subscriptions):
            unwatch()
        logger.info("watcher_closed", client_uid=self.client.uid)

    async def aclose(self) -> None:
        """close(), then wait for schedulers and filter releases to finish."""
        self.close()
        # a watch shared with another watcher's subscribers keeps running
        stopped = [w for w in self._watches if w.poller.stopped]
        self._watches = [w for w in self._watches if not w.poller.stopped]
        for watch in stopped:
            await watch.wait_closed()
