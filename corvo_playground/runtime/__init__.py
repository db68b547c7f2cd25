"""
Runtime bootstrap and execution bridge.
"""

from .bootstrap import RuntimeBootstrap, force_fresh_load, module_file_name
from .bridge import ExecutionBridge, ExecutionRequest, ExecutionResult, sanitize_source
from .events import EventCollector, PlaygroundEvent, PlaygroundEventBus, PlaygroundEventType
from .fetch import NO_CACHE_HEADERS, RemoteSourceFetcher, inspect_source
from .session import Session
from .state import (
    ALLOWED_TRANSITIONS,
    BootstrapDiagnostics,
    BootstrapState,
    RemoteSource,
    RuntimeHandle,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "BootstrapDiagnostics",
    "BootstrapState",
    "EventCollector",
    "ExecutionBridge",
    "ExecutionRequest",
    "ExecutionResult",
    "NO_CACHE_HEADERS",
    "PlaygroundEvent",
    "PlaygroundEventBus",
    "PlaygroundEventType",
    "RemoteSource",
    "RemoteSourceFetcher",
    "RuntimeBootstrap",
    "RuntimeHandle",
    "Session",
    "force_fresh_load",
    "inspect_source",
    "module_file_name",
    "sanitize_source",
]
