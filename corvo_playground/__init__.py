"""
Corvo Playground - runtime bootstrap and execution bridge for the Corvo
interpreter.
"""

from .core.config import PlaygroundConfig
from .core.exceptions import (
    BootstrapError,
    ExecutionError,
    PlaygroundError,
    RuntimeNotReadyError,
)
from .runtime import (
    BootstrapState,
    ExecutionBridge,
    ExecutionResult,
    RuntimeBootstrap,
    RuntimeHandle,
    Session,
    sanitize_source,
)
from .share import decode_source, encode_source

__version__ = "0.1.0"

__all__ = [
    "BootstrapError",
    "BootstrapState",
    "ExecutionBridge",
    "ExecutionError",
    "ExecutionResult",
    "PlaygroundConfig",
    "PlaygroundError",
    "RuntimeBootstrap",
    "RuntimeHandle",
    "RuntimeNotReadyError",
    "Session",
    "__version__",
    "decode_source",
    "encode_source",
    "sanitize_source",
]
