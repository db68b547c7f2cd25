"""
UI-facing helpers for the playground.
"""

from .console import ConsoleView
from .controller import PlaygroundController, PlaygroundView

__all__ = ["ConsoleView", "PlaygroundController", "PlaygroundView"]
