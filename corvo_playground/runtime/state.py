"""
Bootstrap state machine and the values it produces.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class BootstrapState(Enum):
    """Lifecycle of a session's runtime. ``READY`` and ``FAILED`` are terminal."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (BootstrapState.READY, BootstrapState.FAILED)


ALLOWED_TRANSITIONS: dict[BootstrapState, frozenset[BootstrapState]] = {
    BootstrapState.UNINITIALIZED: frozenset({BootstrapState.LOADING}),
    BootstrapState.LOADING: frozenset({BootstrapState.READY, BootstrapState.FAILED}),
    BootstrapState.READY: frozenset(),
    BootstrapState.FAILED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class RuntimeHandle:
    """
    Live capability for a bootstrapped environment.

    Attributes:
        environment:  The embedded environment the interpreter was loaded into.
        module_name:  Name the interpreter module was installed under.
        module_alias: Environment global bound to the loaded module.
        runtime_id:   Identifier self-reported by the module (or the fallback).
        created_at:   ISO timestamp of creation.
    """

    environment: Any
    module_name: str
    module_alias: str
    runtime_id: str
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass(frozen=True, slots=True)
class RemoteSource:
    """Interpreter source text as fetched; discarded after installation."""

    url: str
    text: str
    status_code: int
    byte_length: int
    has_grammar: bool
    has_entry_point: bool
    has_interpreter_class: bool

    def preview(self, limit: int = 240) -> str:
        return self.text[:limit]

    @property
    def markers(self) -> dict[str, bool]:
        return {
            "grammar": self.has_grammar,
            "entry_point": self.has_entry_point,
            "interpreter_class": self.has_interpreter_class,
        }


@dataclass
class BootstrapDiagnostics:
    """Structured diagnostic trace collected while bootstrapping."""

    url: str | None = None
    http_status: int | None = None
    byte_length: int | None = None
    markers: dict[str, bool] = field(default_factory=dict)
    preview: str | None = None
    runtime_id: str | None = None
    error: str | None = None
    error_category: str | None = None
    notes: list[str] = field(default_factory=list)

    def note(self, text: str) -> None:
        self.notes.append(text)

    def record_source(self, source: RemoteSource, preview_chars: int = 240) -> None:
        self.url = source.url
        self.http_status = source.status_code
        self.byte_length = source.byte_length
        self.markers = source.markers
        self.preview = source.preview(preview_chars)
        flags = " ".join(f"{name}={value}" for name, value in self.markers.items())
        self.note(f"Fetched {source.url} (HTTP {source.status_code}, {source.byte_length} bytes)")
        self.note(f"Markers: {flags}")
        self.note(f"Preview:\n{self.preview}")

    @property
    def banner(self) -> str:
        """Runtime identification line shown once the interpreter loaded."""
        if self.runtime_id is None:
            return ""
        return f"{self.runtime_id}\nLoaded runtime successfully."

    def render(self) -> str:
        return "\n".join(self.notes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "http_status": self.http_status,
            "byte_length": self.byte_length,
            "markers": dict(self.markers),
            "preview": self.preview,
            "runtime_id": self.runtime_id,
            "error": self.error,
            "error_category": self.error_category,
            "notes": list(self.notes),
        }
