"""
Session: one bootstrap, its shared ready future, and one bridge.
"""

from __future__ import annotations

import asyncio

from ..core.config import PlaygroundConfig
from ..core.debug_logger import DebugLogger
from ..core.exceptions import BootstrapError, ExecutionError
from ..environment.base import EnvironmentProvider
from .bootstrap import RuntimeBootstrap, SourceFetcher
from .bridge import ExecutionBridge, ExecutionResult
from .events import PlaygroundEventBus
from .state import BootstrapDiagnostics, BootstrapState, RuntimeHandle


class Session:
    """
    Owns the runtime lifecycle for one playground page.

    Independent sessions never share state, so several can coexist in one
    process (tests rely on this).
    """

    def __init__(
        self,
        config: PlaygroundConfig | None = None,
        *,
        provider: EnvironmentProvider | None = None,
        fetcher: SourceFetcher | None = None,
        event_bus: PlaygroundEventBus | None = None,
        debug_logger: DebugLogger | None = None,
    ) -> None:
        self.config = config or PlaygroundConfig()
        self.events = event_bus or PlaygroundEventBus()
        self.debug_logger = debug_logger or DebugLogger(self.config.debug)
        self.bootstrap = RuntimeBootstrap(
            self.config,
            provider=provider,
            fetcher=fetcher,
            event_bus=self.events,
            debug_logger=self.debug_logger,
        )
        self.bridge = ExecutionBridge(self.bootstrap, debug_logger=self.debug_logger)

    @property
    def state(self) -> BootstrapState:
        return self.bootstrap.state

    @property
    def diagnostics(self) -> BootstrapDiagnostics:
        return self.bootstrap.diagnostics

    @property
    def busy(self) -> bool:
        return self.bridge.busy

    def start(self) -> asyncio.Future:
        """Begin bootstrapping in the background."""
        return self.bootstrap.initialize()

    async def ready(self) -> RuntimeHandle | BootstrapError:
        """Await the shared bootstrap outcome; cancelling a waiter leaves it running."""
        return await asyncio.shield(self.bootstrap.initialize())

    async def run(self, source_text: str) -> ExecutionResult | ExecutionError:
        await self.ready()
        return await self.bridge.run(source_text)

    def close(self) -> None:
        environment = self.bootstrap.environment
        if environment is not None:
            environment.close()

    async def __aenter__(self) -> "Session":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
