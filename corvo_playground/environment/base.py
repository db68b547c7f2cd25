"""
Base types for embedded execution environments.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class EnvironmentGlobals:
    """Named values shared between the host and the environment namespace."""

    def __init__(self, namespace: dict[str, Any] | None = None) -> None:
        self._namespace = namespace if namespace is not None else {}

    def set(self, name: str, value: Any) -> None:
        self._namespace[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self._namespace.get(name, default)

    def delete(self, name: str) -> None:
        self._namespace.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._namespace

    @property
    def namespace(self) -> dict[str, Any]:
        """Direct access to the backing namespace (for testing/debug)."""
        return self._namespace


@runtime_checkable
class EmbeddedEnvironment(Protocol):
    """
    Contract for a live embedded execution environment.

    Implementations must support:
    - ``install_package(name)`` through the environment's package installer
    - ``write_file(path, text)`` into the virtual file namespace
    - ``run_async(code)`` returning the value of a trailing expression
    - ``globals`` for passing named values in and out
    - ``close()`` to release resources
    """

    name: str

    async def install_package(self, package: str) -> None:
        """Install *package* inside the environment."""
        ...

    def write_file(self, path: str, text: str) -> None:
        """Write *text* to *path* in the virtual file namespace, overwriting."""
        ...

    async def run_async(self, code: str) -> Any:
        """Evaluate host code inside the environment and return its value."""
        ...

    @property
    def globals(self) -> EnvironmentGlobals:
        """Binding mechanism between host and environment."""
        ...

    def close(self) -> None:
        """Tear down the environment."""
        ...


class EnvironmentProvider(Protocol):
    """Acquires an embedded environment. Acquisition may suspend for seconds."""

    name: str

    async def acquire(self) -> EmbeddedEnvironment:
        """Create and return a live environment."""
        ...


@runtime_checkable
class SupportsFreshImport(Protocol):
    """Environment that can load a virtual module without the shared import cache."""

    async def fresh_import(self, module_name: str, alias: str) -> Any:
        """Execute *module_name* anew and bind it to the global *alias*."""
        ...
