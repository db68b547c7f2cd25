"""
Debug logger for bootstrap step timing and fetch tracking.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Statistics for a timed operation."""

    count: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, elapsed: float) -> None:
        """Add a timing measurement."""
        self.count += 1
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)

    @property
    def avg_time(self) -> float:
        """Average time per operation."""
        return self.total_time / self.count if self.count > 0 else 0.0


@dataclass
class DebugLoggerConfig:
    """Configuration for debug logger."""

    enabled: bool = False
    log_timings: bool = True
    log_fetches: bool = True
    include_stack_traces: bool = True


class DebugLogger:
    """
    Opt-in logger for bootstrap and run diagnostics.

    Records step timings and remote fetches when enabled; every method is a
    no-op otherwise.
    """

    def __init__(self, config: DebugLoggerConfig | None = None):
        self.config = config or DebugLoggerConfig()
        self._timings: dict[str, TimingStats] = defaultdict(TimingStats)
        self._fetches: list[dict[str, Any]] = []

    def enable(self) -> None:
        """Enable debug logging."""
        self.config.enabled = True

    def disable(self) -> None:
        """Disable debug logging."""
        self.config.enabled = False

    @contextmanager
    def timed_operation(self, name: str) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Args:
            name: Name of the operation being timed
        """
        if not self.config.enabled or not self.config.log_timings:
            yield
            return

        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self._timings[name].add(elapsed)
            logger.debug(f"[TIMING] {name}: {elapsed:.3f}s")

    def log_fetch(
        self,
        url: str,
        status_code: int | None,
        elapsed: float,
        byte_length: int = 0,
        error: str | None = None,
    ) -> None:
        """
        Log a remote source fetch.

        Args:
            url: Requested URL (without cache-busting parameter)
            status_code: HTTP status, or None when no response arrived
            elapsed: Time taken in seconds
            byte_length: Size of the response body
            error: Error text if the fetch failed
        """
        if not self.config.enabled or not self.config.log_fetches:
            return

        self._fetches.append(
            {
                "url": url,
                "status_code": status_code,
                "elapsed": elapsed,
                "byte_length": byte_length,
                "success": error is None,
                "error": error,
                "timestamp": time.time(),
            }
        )
        status = "✓" if error is None else "✗"
        logger.debug(
            f"[FETCH {status}] url={url}, status={status_code}, "
            f"bytes={byte_length}, time={elapsed:.3f}s"
        )

    def log_error(self, error: BaseException, context: str = "") -> None:
        """
        Log an error with optional stack trace.

        Args:
            error: The exception
            context: Additional context
        """
        if not self.config.enabled:
            return

        msg = f"[ERROR] {context}: {type(error).__name__}: {error}"
        if self.config.include_stack_traces:
            logger.error(msg, exc_info=error)
        else:
            logger.error(msg)

    def get_timing_stats(self) -> dict[str, dict[str, float]]:
        """Get all timing statistics."""
        return {
            name: {
                "count": stats.count,
                "total": stats.total_time,
                "avg": stats.avg_time,
                "min": stats.min_time if stats.count > 0 else 0,
                "max": stats.max_time,
            }
            for name, stats in self._timings.items()
        }

    def get_fetch_stats(self) -> dict[str, Any]:
        """Get fetch statistics."""
        if not self._fetches:
            return {"total_fetches": 0}

        return {
            "total_fetches": len(self._fetches),
            "successful_fetches": sum(1 for f in self._fetches if f["success"]),
            "total_bytes": sum(f["byte_length"] for f in self._fetches),
            "total_time": sum(f["elapsed"] for f in self._fetches),
            "last_status": self._fetches[-1]["status_code"],
        }

    def clear(self) -> None:
        """Clear all logged data."""
        self._timings.clear()
        self._fetches.clear()
