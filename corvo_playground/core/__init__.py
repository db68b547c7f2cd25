"""
Core functionality for Corvo Playground.
"""

from .config import (
    EnvironmentConfig,
    PlaygroundConfig,
    ShareConfig,
    SourceConfig,
    TimeoutConfig,
)
from .exceptions import (
    BootstrapError,
    ConfigurationError,
    EmbeddedEnvironmentError,
    EnvironmentAcquisitionError,
    ExecutionError,
    ModuleLoadError,
    PackageInstallError,
    PlaygroundError,
    RemoteFetchError,
    RuntimeNotReadyError,
    format_error_message,
)
from .logging import get_logger, setup_logging

__all__ = [
    "BootstrapError",
    "ConfigurationError",
    "EmbeddedEnvironmentError",
    "EnvironmentAcquisitionError",
    "EnvironmentConfig",
    "ExecutionError",
    "ModuleLoadError",
    "PackageInstallError",
    "PlaygroundConfig",
    "PlaygroundError",
    "RemoteFetchError",
    "RuntimeNotReadyError",
    "ShareConfig",
    "SourceConfig",
    "TimeoutConfig",
    "format_error_message",
    "get_logger",
    "setup_logging",
]
