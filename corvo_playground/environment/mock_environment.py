"""
Mock environment for deterministic testing.

``MockEnvironment`` implements the ``EmbeddedEnvironment`` contract and
answers ``run_async`` calls from regex side effects or pre-scripted
responses. It records every operation so tests can assert on what the
bootstrap and bridge asked of the environment.

Example::

    from corvo_playground.environment.mock_environment import (
        MockEnvironment,
        MockEnvironmentProvider,
    )

    env = MockEnvironment(side_effects={
        r"run_corvo": lambda code: ("hello", "trace-1"),
    })
    provider = MockEnvironmentProvider(env)
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Callable

from .base import EnvironmentGlobals


class MockEnvironment:
    """
    Scripted environment that records every call.

    Parameters:
        responses:    Ordered values returned by successive ``run_async``
                      calls that match no side effect. ``None`` once exhausted.
        side_effects: Mapping of regex pattern -> callable. When code passed
                      to ``run_async`` matches, the callable receives the
                      code and its return value (or raised exception) is the
                      outcome. Checked before scripted responses.
        failures:     Mapping of operation name (``install_package``,
                      ``write_file``, ``run_async``) -> exception raised
                      whenever that operation is called.
        run_delay:    Seconds each ``run_async`` call suspends for.
    """

    name = "mock"

    def __init__(
        self,
        responses: list[Any] | None = None,
        *,
        side_effects: dict[str, Callable[[str], Any]] | None = None,
        failures: dict[str, BaseException] | None = None,
        run_delay: float = 0.0,
    ) -> None:
        self._responses = list(responses or [])
        self._side_effects = side_effects or {}
        self._failures = dict(failures or {})
        self._run_delay = run_delay
        self._globals = EnvironmentGlobals()
        self._call_log: list[tuple[str, Any]] = []
        self._call_index = 0
        self._in_flight = 0
        self.max_concurrent_runs = 0
        self.files: dict[str, str] = {}
        self.installed_packages: list[str] = []
        self.closed = False

    # ── Environment contract ──────────────────────────────────────────

    @property
    def globals(self) -> EnvironmentGlobals:
        return self._globals

    async def install_package(self, package: str) -> None:
        self._record("install_package", package)
        await asyncio.sleep(0)
        self.installed_packages.append(package)

    def write_file(self, path: str, text: str) -> None:
        self._record("write_file", path)
        self.files[path] = text

    async def run_async(self, code: str) -> Any:
        self._in_flight += 1
        self.max_concurrent_runs = max(self.max_concurrent_runs, self._in_flight)
        try:
            await asyncio.sleep(self._run_delay)
            self._record("run_async", code)

            for pattern, handler in self._side_effects.items():
                if re.search(pattern, code):
                    return handler(code)

            if self._call_index < len(self._responses):
                result = self._responses[self._call_index]
                self._call_index += 1
                return result
            return None
        finally:
            self._in_flight -= 1

    def close(self) -> None:
        self.closed = True

    # ── Properties ────────────────────────────────────────────────────

    @property
    def call_log(self) -> list[tuple[str, Any]]:
        """All ``(operation, argument)`` pairs in call order."""
        return list(self._call_log)

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_to(self, operation: str) -> list[Any]:
        """Arguments of every call to *operation*."""
        return [arg for op, arg in self._call_log if op == operation]

    # ── Internal helpers ──────────────────────────────────────────────

    def _record(self, operation: str, argument: Any) -> None:
        self._call_log.append((operation, argument))
        failure = self._failures.get(operation)
        if failure is not None:
            raise failure


class MockEnvironmentProvider:
    """Hands out a single ``MockEnvironment`` and counts acquisitions."""

    name = "mock"

    def __init__(
        self,
        environment: MockEnvironment | None = None,
        *,
        failure: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self.environment = environment or MockEnvironment()
        self._failure = failure
        self._delay = delay
        self.acquire_count = 0

    async def acquire(self) -> MockEnvironment:
        self.acquire_count += 1
        await asyncio.sleep(self._delay)
        if self._failure is not None:
            raise self._failure
        return self.environment
