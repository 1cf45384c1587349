"""
Remote-call layer for chainwatch.

Defines the operations the watcher needs from a JSON-RPC provider (filter
creation, incremental filter changes, log ranges, block number, filter
removal) and an httpx-based implementation of them.
"""

from chainwatch.rpc.json_rpc import JsonRpcClient
from chainwatch.rpc.models import EventDescriptor, FilterHandle, LogCriteria
from chainwatch.rpc.ports import RpcClient

__all__ = [
    "EventDescriptor",
    "FilterHandle",
    "JsonRpcClient",
    "LogCriteria",
    "RpcClient",
]
