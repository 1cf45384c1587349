"""
Watcher engine: fingerprinting, shared-watch registry, poll scheduler,
filter lifecycle and emission policy.
"""

from chainwatch.watcher.fingerprint import build_fingerprint
from chainwatch.watcher.filter_state import FilterLifecycle, FilterState
from chainwatch.watcher.registry import Emitter, Listener, ObserverRegistry
from chainwatch.watcher.scheduler import Poller, poll
from chainwatch.watcher.watch import Watch
from chainwatch.watcher.watch_event import EventWatcher, WatchEventParameters, watch_event

__all__ = [
    "Emitter",
    "EventWatcher",
    "FilterLifecycle",
    "FilterState",
    "Listener",
    "ObserverRegistry",
    "Poller",
    "Watch",
    "WatchEventParameters",
    "build_fingerprint",
    "poll",
    "watch_event",
]
