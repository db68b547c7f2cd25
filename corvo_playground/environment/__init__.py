"""
Embedded execution environments.
"""

from .base import (
    EmbeddedEnvironment,
    EnvironmentGlobals,
    EnvironmentProvider,
    SupportsFreshImport,
)
from .local_environment import (
    LocalEnvironment,
    LocalEnvironmentProvider,
    VirtualFileSystem,
    VirtualModuleFinder,
)
from .mock_environment import MockEnvironment, MockEnvironmentProvider
from .registry import (
    SUPPORTED_ENVIRONMENTS,
    EnvironmentHealth,
    create_environment_provider,
    detect_environment_health,
)

__all__ = [
    "EmbeddedEnvironment",
    "EnvironmentGlobals",
    "EnvironmentHealth",
    "EnvironmentProvider",
    "LocalEnvironment",
    "LocalEnvironmentProvider",
    "MockEnvironment",
    "MockEnvironmentProvider",
    "SUPPORTED_ENVIRONMENTS",
    "SupportsFreshImport",
    "VirtualFileSystem",
    "VirtualModuleFinder",
    "create_environment_provider",
    "detect_environment_health",
]
