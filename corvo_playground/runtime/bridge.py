"""
Execution bridge between editor source text and the loaded interpreter.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Any

from ..core.debug_logger import DebugLogger
from ..core.exceptions import ExecutionError, RuntimeNotReadyError
from ..core.logging import get_logger
from .bootstrap import RuntimeBootstrap
from .events import PlaygroundEventType
from .state import BootstrapState, RuntimeHandle

logger = get_logger(__name__)

# Full-line comments, optionally indented with spaces or tabs.
_COMMENT_LINE = re.compile(r"^[ \t]*#.*$", re.MULTILINE)


def sanitize_source(text: str) -> str:
    """Blank out full-line ``#`` comments, keeping the line count unchanged."""
    return _COMMENT_LINE.sub("", text)


@dataclass(frozen=True, slots=True)
class ExecutionRequest:
    """One run's source text, before and after sanitizing."""

    source: str
    sanitized: str

    @classmethod
    def from_source(cls, source: str) -> "ExecutionRequest":
        return cls(source=source, sanitized=sanitize_source(source))

    @property
    def line_count(self) -> int:
        return self.sanitized.count("\n") + 1


@dataclass(slots=True)
class ExecutionResult:
    """
    Interpreter output for one run.

    Attributes:
        primary_output:   Program output text.
        diagnostic_trace: Interpreter debug text.
    """

    primary_output: str = ""
    diagnostic_trace: str = ""

    @classmethod
    def from_entry_point(cls, value: Any) -> "ExecutionResult":
        """Unmarshal the ``(output, debug)`` pair returned by the entry point."""
        if isinstance(value, (str, bytes)):
            raise TypeError(
                f"Entry point must return an (output, debug) pair, got {type(value).__name__}"
            )
        try:
            output, trace = value
        except (TypeError, ValueError):
            raise TypeError(
                f"Entry point must return an (output, debug) pair, got {type(value).__name__}"
            ) from None
        return cls(primary_output=_as_text(output), diagnostic_trace=_as_text(trace))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


class ExecutionBridge:
    """
    Runs guest programs against a bootstrapped runtime, one at a time.

    ``run`` never raises: failures come back as ``ExecutionError`` values and
    leave the runtime usable for the next call.
    """

    def __init__(
        self,
        bootstrap: RuntimeBootstrap,
        *,
        debug_logger: DebugLogger | None = None,
    ) -> None:
        self._bootstrap = bootstrap
        self._debug = debug_logger or DebugLogger(bootstrap.config.debug)
        self._guard = asyncio.Lock()

    @property
    def busy(self) -> bool:
        """True while a run holds the execution slot."""
        return self._guard.locked()

    async def run(self, source_text: str) -> ExecutionResult | ExecutionError:
        handle = self._bootstrap.handle
        state = self._bootstrap.state
        if state is not BootstrapState.READY or handle is None:
            logger.debug("Run refused, runtime state is %s", state.value)
            return RuntimeNotReadyError(state)

        request = ExecutionRequest.from_source(source_text)
        async with self._guard:
            return await self._execute(handle, request)

    async def _execute(
        self, handle: RuntimeHandle, request: ExecutionRequest
    ) -> ExecutionResult | ExecutionError:
        env_config = self._bootstrap.config.environment
        timeout = self._bootstrap.config.timeouts.run_seconds
        events = self._bootstrap.events
        environment = handle.environment
        call = f"{handle.module_alias}.{env_config.entry_point}({env_config.source_binding})"

        events.emit(PlaygroundEventType.RUN_START, lines=request.line_count)
        with self._debug.timed_operation("bridge.run"):
            try:
                environment.globals.set(env_config.source_binding, request.sanitized)
                pending = environment.run_async(call)
                if timeout is None:
                    raw = await pending
                else:
                    raw = await asyncio.wait_for(pending, timeout)
                result = ExecutionResult.from_entry_point(raw)
            except Exception as e:
                if isinstance(e, asyncio.TimeoutError) and timeout is not None:
                    error = ExecutionError(f"Execution exceeded {timeout:g}s timeout")
                else:
                    error = ExecutionError.from_exception(e)
                self._debug.log_error(e, "bridge.run")
                events.emit(PlaygroundEventType.RUN_ERROR, error=str(error))
                return error

        events.emit(
            PlaygroundEventType.RUN_END,
            output_chars=len(result.primary_output),
            trace_chars=len(result.diagnostic_trace),
        )
        return result
