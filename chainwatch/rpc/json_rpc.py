"""
Ethereum-style JSON-RPC client for the watcher's remote operations.

Responsibilities:
- Issue eth_newFilter / eth_getFilterChanges / eth_getLogs / eth_blockNumber /
  eth_uninstallFilter over HTTP (httpx).
- Translate provider errors into RemoteError with a closed ErrorKind so the
  watcher can tell an invalidated filter from an unsupported method.

Retry and backoff are left to the caller's transport; each call is one request.
"""

from __future__ import annotations

import itertools
import uuid
from typing import Any, Callable

import httpx

from chainwatch.config.env import DEFAULT_POLLING_INTERVAL_SEC, DEFAULT_REQUEST_TIMEOUT_SEC
from chainwatch.core.exceptions import (
    ErrorKind,
    InvalidFilterError,
    RemoteError,
    UnsupportedMethodError,
)
from chainwatch.rpc.models import FilterHandle, LogCriteria
from chainwatch.watch_logging import get_logger

logger = get_logger(__name__)

# JSON-RPC error codes
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INVALID_INPUT = -32000

_UNSUPPORTED_MARKERS = ("not supported", "not available", "method not found", "unsupported")

TopicEncoder = Callable[[LogCriteria], "list[Any] | None"]

_request_ids = itertools.count(1)


def _build_rpc_body(method: str, params: list[Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": method,
        "params": params,
    }


def default_topic_encoder(criteria: LogCriteria) -> list[Any] | None:
    """
    Build the `topics` array: event selector followed by positional, already
    encoded indexed arguments (None = wildcard, list = OR).
    """
    if criteria.event is None:
        if criteria.args is not None:
            raise ValueError("args require an event descriptor")
        return None
    topics: list[Any] = [criteria.event.topic]
    if criteria.args is None:
        return topics
    if isinstance(criteria.args, (list, tuple)):
        topics.extend(criteria.args)
        return topics
    raise ValueError("named argument filters need a custom topic_encoder")


def _classify_error(method: str, err: Any) -> RemoteError:
    """Map a JSON-RPC error object to the RemoteError hierarchy."""
    if isinstance(err, dict):
        code = err.get("code")
        message = str(err.get("message", err))
    else:
        code = None
        message = str(err)
    lowered = message.lower()
    text = f"{method}: {message}"
    if code == METHOD_NOT_FOUND or any(m in lowered for m in _UNSUPPORTED_MARKERS):
        return UnsupportedMethodError(text, code=code)
    if method == "eth_getFilterChanges" and (
        code in (INVALID_INPUT, INVALID_PARAMS) or "filter not found" in lowered
    ):
        return InvalidFilterError(text, code=code)
    return RemoteError(text, ErrorKind.OTHER, code)


class JsonRpcClient:
    """
    Async JSON-RPC client implementing chainwatch.rpc.ports.RpcClient.

    Use as an async context manager, or call aclose() when done. An existing
    httpx.AsyncClient may be injected (it is then not closed by this client).
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        polling_interval: float = DEFAULT_POLLING_INTERVAL_SEC,
        request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC,
        topic_encoder: TopicEncoder | None = None,
        http_client: httpx.AsyncClient | None = None,
        uid: str | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if polling_interval <= 0:
            raise ValueError("polling_interval must be positive")
        self.uid = uid or uuid.uuid4().hex
        self.polling_interval = polling_interval
        self._rpc_url = rpc_url.rstrip("/")
        self._encode_topics = topic_encoder or default_topic_encoder
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(request_timeout_sec))

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def request(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call; raise RemoteError on transport or RPC error."""
        body = _build_rpc_body(method, params)
        try:
            resp = await self._http.post(self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise RemoteError(f"{method}: {e}", ErrorKind.TRANSPORT) from e
        except ValueError as e:
            raise RemoteError(f"{method}: invalid JSON response", ErrorKind.OTHER) from e
        if not isinstance(data, dict):
            raise RemoteError(f"{method}: malformed response", ErrorKind.OTHER)
        if data.get("error") is not None:
            raise _classify_error(method, data["error"])
        return data.get("result")

    def _filter_params(self, criteria: LogCriteria) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if criteria.address is not None:
            params["address"] = criteria.address
        topics = self._encode_topics(criteria)
        if topics is not None:
            params["topics"] = topics
        return params

    async def create_filter(self, criteria: LogCriteria) -> FilterHandle:
        result = await self.request("eth_newFilter", [self._filter_params(criteria)])
        if not isinstance(result, str):
            raise RemoteError("eth_newFilter: returned no filter id", ErrorKind.OTHER)
        logger.debug("rpc_filter_created", filter_id=result)
        return FilterHandle(id=result, criteria=criteria)

    async def poll_filter(self, handle: FilterHandle) -> list[Any]:
        result = await self.request("eth_getFilterChanges", [handle.id])
        return list(result or [])

    async def fetch_range(self, criteria: LogCriteria, from_block: int, to_block: int) -> list[Any]:
        params = self._filter_params(criteria)
        params["fromBlock"] = hex(from_block)
        params["toBlock"] = hex(to_block)
        result = await self.request("eth_getLogs", [params])
        return list(result or [])

    async def current_position(self) -> int:
        result = await self.request("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise RemoteError(f"eth_blockNumber: bad result {result!r}", ErrorKind.OTHER) from e

    async def release_filter(self, handle: FilterHandle) -> None:
        await self.request("eth_uninstallFilter", [handle.id])
