"""
Terminal view for the playground, rendered with rich.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


class ConsoleView:
    """``PlaygroundView`` that prints output and debug panels to a console."""

    def __init__(self, console: Console | None = None, source: str = "") -> None:
        self.console = console or Console()
        self._source = source
        self.run_enabled = False

    def set_output(self, text: str) -> None:
        self.console.print(Panel(Text(text), title="Output", border_style="cyan"))

    def set_debug(self, text: str) -> None:
        if not text:
            return
        self.console.print(Panel(Text(text), title="Debug", border_style="dim"))

    def set_run_enabled(self, enabled: bool) -> None:
        self.run_enabled = enabled

    def get_source(self) -> str:
        return self._source

    def set_source(self, text: str) -> None:
        self._source = text
