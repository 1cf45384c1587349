"""
Structured logging for chainwatch.

JSON logs with timestamp, event_type and watch fingerprint.
Use get_logger() in every module for aggregation-friendly output.
"""

from chainwatch.watch_logging.logger import bind_watch, get_logger

__all__ = ["bind_watch", "get_logger"]
