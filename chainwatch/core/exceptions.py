"""
Application-level exceptions.

Responsibilities:
- Define the closed set of remote failure kinds the watcher reacts to.
- Provide RemoteError and its subclasses with consistent kind/code/message.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_FILTER = "invalid_filter"
    UNSUPPORTED = "unsupported"
    TRANSPORT = "transport"
    OTHER = "other"


class RemoteError(Exception):
    """A remote call failed. `kind` drives the watcher's filter state transitions."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.OTHER, code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.code = code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, kind={self.kind.value}, code={self.code})"


class InvalidFilterError(RemoteError):
    """The filter handle was invalidated (expired or evicted) by the provider."""

    def __init__(self, message: str = "filter not found", code: int | None = None):
        super().__init__(message, ErrorKind.INVALID_FILTER, code)


class UnsupportedMethodError(RemoteError):
    """The provider does not implement the requested method."""

    def __init__(self, message: str = "method not supported", code: int | None = None):
        super().__init__(message, ErrorKind.UNSUPPORTED, code)
