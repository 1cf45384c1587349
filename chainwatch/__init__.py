"""
chainwatch — polling-based event log watcher for JSON-RPC chains.

Watches a remote data source for new matching logs, preferring stateful
filters and falling back to block-range queries when the provider does not
support them. Identical subscriptions share one underlying watch.
"""

from chainwatch.watcher import EventWatcher, WatchEventParameters, watch_event

__version__ = "0.1.0"

__all__ = ["EventWatcher", "WatchEventParameters", "watch_event", "__version__"]
