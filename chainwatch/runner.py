"""
Command-line log watcher.

Watches the configured JSON-RPC endpoint for logs matching the given
address/topic and prints every delivered batch to stdout as one JSON line.
Structured logs go to stderr. Safe shutdown on SIGINT/SIGTERM.

Usage: python -m chainwatch.runner --address 0xabc... --topic 0xddf2...
Env: CHAINWATCH_RPC_URL, CHAINWATCH_POLLING_INTERVAL_SEC, CHAINWATCH_REQUEST_TIMEOUT_SEC
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from typing import Any, TextIO

from chainwatch.config import Settings, get_settings
from chainwatch.config.env import mask_rpc_url
from chainwatch.rpc import EventDescriptor, JsonRpcClient
from chainwatch.watch_logging import get_logger
from chainwatch.watcher import EventWatcher

logger = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="chainwatch", description="Watch a chain for new event logs.")
    parser.add_argument("--address", action="append", default=[], help="Contract address (repeatable)")
    parser.add_argument("--topic", help="Event selector (topic0) to match")
    parser.add_argument("--event-name", default="Event", help="Label for --topic in logs")
    parser.add_argument("--arg-topic", action="append", default=[], help="Encoded indexed argument topic (repeatable, positional)")
    parser.add_argument("--no-batch", action="store_true", help="Print one line per log instead of one per tick")
    parser.add_argument("--interval", type=float, default=None, help="Polling interval in seconds")
    return parser.parse_args(argv)


def build_subscription(args: argparse.Namespace) -> dict[str, Any]:
    """Translate CLI arguments into EventWatcher.watch_event keyword arguments."""
    if args.arg_topic and not args.topic:
        raise ValueError("--arg-topic requires --topic")
    address: str | list[str] | None = None
    if len(args.address) == 1:
        address = args.address[0]
    elif args.address:
        address = list(args.address)
    kwargs: dict[str, Any] = {
        "address": address,
        "batch": not args.no_batch,
        "polling_interval": args.interval,
    }
    if args.topic:
        kwargs["event"] = EventDescriptor(name=args.event_name, topic=args.topic)
        if args.arg_topic:
            kwargs["args"] = list(args.arg_topic)
    return kwargs


async def run_watch(settings: Settings, args: argparse.Namespace, out: TextIO = sys.stdout) -> None:
    """Run one watch until a shutdown signal arrives."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows or not in main thread
            pass

    def on_logs(logs: list[Any]) -> None:
        out.write(json.dumps(logs, default=str) + "\n")
        out.flush()

    def on_error(error: BaseException) -> None:
        logger.warning("runner_tick_failed", error=str(error))

    async with JsonRpcClient(
        settings.rpc_url,
        polling_interval=settings.polling_interval_sec,
        request_timeout_sec=settings.request_timeout_sec,
    ) as client:
        watcher = EventWatcher(client)
        watcher.watch_event(on_logs, on_error=on_error, **build_subscription(args))
        logger.info(
            "runner_started",
            rpc_url=mask_rpc_url(settings.rpc_url),
            polling_interval_sec=args.interval or settings.polling_interval_sec,
        )
        await stop.wait()
        await watcher.aclose()
    logger.info("runner_stopped")


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load settings from env and run the watcher."""
    args = _parse_args(argv)
    try:
        settings = get_settings()
        asyncio.run(run_watch(settings, args))
        return 0
    except KeyboardInterrupt:
        logger.info("runner_shutdown_signal")
        return 0
    except Exception as e:
        logger.exception("runner_fatal", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
