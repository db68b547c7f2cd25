"""
Playground controller: the sequencing a UI needs around a ``Session``.

The view only has to display text and toggle its run trigger; the
controller decides what to show while loading, running and failing.
"""

from __future__ import annotations

from typing import Protocol

from ..core.exceptions import BootstrapError, ExecutionError, ShareLinkError, format_error_message
from ..core.logging import get_logger
from ..runtime.bridge import ExecutionResult
from ..runtime.session import Session
from ..share import build_share_url, source_from_url

logger = get_logger(__name__)

LOADING_MESSAGE = "Loading Python runtime…"
READY_MESSAGE = "Ready."
LOAD_ERROR_MESSAGE = "Runtime load error."
RUNNING_MESSAGE = "Running…"
RUN_ERROR_MESSAGE = "Runtime error."
NO_OUTPUT = "(no output)"
NO_DEBUG = "(no debug)"


class PlaygroundView(Protocol):
    """What the controller needs from a UI."""

    def set_output(self, text: str) -> None:
        """Show status or program output."""
        ...

    def set_debug(self, text: str) -> None:
        """Show diagnostic text."""
        ...

    def set_run_enabled(self, enabled: bool) -> None: ...

    def get_source(self) -> str: ...

    def set_source(self, text: str) -> None: ...


class PlaygroundController:
    """Drives a ``PlaygroundView`` from a ``Session``."""

    def __init__(self, session: Session, view: PlaygroundView) -> None:
        self._session = session
        self._view = view
        self._banner = ""
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Show loading progress until the runtime settles, then enable runs."""
        self._view.set_run_enabled(False)
        self._view.set_output(LOADING_MESSAGE)
        self._view.set_debug("")
        try:
            outcome = await self._session.ready()
            if isinstance(outcome, BootstrapError):
                self._view.set_output(LOAD_ERROR_MESSAGE)
                self._view.set_debug(self._session.diagnostics.render())
            else:
                self._banner = self._session.diagnostics.banner
                self._view.set_output(READY_MESSAGE)
                self._view.set_debug(self._banner)
        finally:
            self._view.set_run_enabled(True)

    async def handle_run(self) -> ExecutionResult | ExecutionError | None:
        """Run the view's program; ignored while another run is in flight."""
        if self._running:
            logger.debug("Run ignored, previous run still in flight")
            return None

        self._running = True
        self._view.set_run_enabled(False)
        self._view.set_output(RUNNING_MESSAGE)
        self._view.set_debug("")
        try:
            result = await self._session.run(self._view.get_source())
            if isinstance(result, ExecutionError):
                self._view.set_output(RUN_ERROR_MESSAGE)
                self._view.set_debug(str(result))
            else:
                self._view.set_output(result.primary_output or NO_OUTPUT)
                prefix = f"{self._banner}\n\n" if self._banner else ""
                self._view.set_debug(prefix + (result.diagnostic_trace or NO_DEBUG))
            return result
        finally:
            self._running = False
            self._view.set_run_enabled(True)

    def share_url(self, base_url: str) -> str:
        """Link that reopens the playground with the current program."""
        return build_share_url(
            base_url, self._view.get_source(), param=self._session.config.share.query_param
        )

    def load_shared(self, url: str) -> str | None:
        """Put the program carried by *url* into the view, if any."""
        try:
            source = source_from_url(url, param=self._session.config.share.query_param)
        except ShareLinkError as e:
            self._view.set_debug(format_error_message(e))
            return None
        if source is not None:
            self._view.set_source(source)
        return source
