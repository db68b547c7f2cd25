"""
Remote interpreter source fetching.
"""

from __future__ import annotations

import asyncio
import time

import requests

from ..core.config import SourceConfig
from ..core.debug_logger import DebugLogger
from ..core.exceptions import RemoteFetchError
from ..core.logging import get_logger
from .state import RemoteSource

logger = get_logger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, max-age=0",
    "Pragma": "no-cache",
}


def inspect_source(url: str, text: str, status_code: int, config: SourceConfig) -> RemoteSource:
    """Build a ``RemoteSource`` with its diagnostic marker flags."""
    return RemoteSource(
        url=url,
        text=text,
        status_code=status_code,
        byte_length=len(text.encode("utf-8")),
        has_grammar=config.grammar_marker in text,
        has_entry_point=config.entry_point_marker in text,
        has_interpreter_class=config.interpreter_class_marker in text,
    )


class RemoteSourceFetcher:
    """
    Fetches interpreter source with caching defeated.

    Every request carries a fresh timestamp query parameter and no-cache
    headers so each session sees the latest published interpreter.
    """

    def __init__(
        self,
        config: SourceConfig | None = None,
        *,
        timeout: float | None = 15.0,
        debug_logger: DebugLogger | None = None,
    ) -> None:
        self.config = config or SourceConfig()
        self.timeout = timeout
        self._debug = debug_logger or DebugLogger()

    def cache_bust_params(self) -> dict[str, str]:
        return {self.config.cache_bust_param: str(int(time.time() * 1000))}

    def fetch_sync(self, url: str) -> RemoteSource:
        started = time.perf_counter()
        try:
            response = requests.get(
                url,
                params=self.cache_bust_params(),
                headers=NO_CACHE_HEADERS,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self._debug.log_fetch(url, None, time.perf_counter() - started, error=str(e))
            raise RemoteFetchError(url, detail=str(e)) from e

        elapsed = time.perf_counter() - started
        status_code = response.status_code
        if not 200 <= status_code < 300:
            error = RemoteFetchError(url, status_code=status_code)
            self._debug.log_fetch(url, status_code, elapsed, error=str(error))
            raise error

        text = response.content.decode("utf-8", errors="replace")
        source = inspect_source(url, text, status_code, self.config)
        self._debug.log_fetch(url, status_code, elapsed, byte_length=source.byte_length)
        logger.info("Fetched %s (%d bytes)", url, source.byte_length)
        return source

    async def fetch(self, url: str) -> RemoteSource:
        """Fetch without blocking the event loop."""
        return await asyncio.to_thread(self.fetch_sync, url)
