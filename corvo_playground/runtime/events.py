"""
Runtime events for bootstrap and run observability.

The bootstrap emits state changes and per-step progress, the bridge emits
run lifecycle events. UI code subscribes to drive status displays.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import RLock
from typing import Any, Callable

from ..core.logging import get_logger

logger = get_logger(__name__)


class PlaygroundEventType(Enum):
    """Event types emitted by the playground runtime."""

    # Bootstrap lifecycle
    STATE_CHANGED = "state_changed"
    STEP_START = "step_start"
    STEP_END = "step_end"
    STEP_ERROR = "step_error"

    # Runs
    RUN_START = "run_start"
    RUN_END = "run_end"
    RUN_ERROR = "run_error"


@dataclass(slots=True)
class PlaygroundEvent:
    """One event emitted by the runtime."""

    event_type: PlaygroundEventType
    timestamp: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.event_type.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }


EventCallback = Callable[[PlaygroundEvent], None]


class PlaygroundEventBus:
    """In-process pub/sub bus for runtime events."""

    def __init__(self):
        self._lock = RLock()
        self._subscribers: list[EventCallback] = []
        self._type_subscribers: dict[PlaygroundEventType, list[EventCallback]] = {}

    def subscribe(self, callback: EventCallback) -> None:
        """Subscribe to all events."""
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def subscribe_to_type(self, event_type: PlaygroundEventType, callback: EventCallback) -> None:
        """Subscribe to a specific event type."""
        with self._lock:
            listeners = self._type_subscribers.setdefault(event_type, [])
            if callback not in listeners:
                listeners.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        """Unsubscribe from all events."""
        with self._lock:
            self._subscribers = [item for item in self._subscribers if item != callback]
            for event_type in self._type_subscribers:
                self._type_subscribers[event_type] = [
                    item for item in self._type_subscribers[event_type] if item != callback
                ]

    def emit(self, event_type: PlaygroundEventType, **payload: Any) -> PlaygroundEvent:
        """Emit a typed event and return it."""
        event = PlaygroundEvent(
            event_type=event_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
            payload=payload,
        )
        with self._lock:
            listeners = list(self._subscribers)
            listeners.extend(self._type_subscribers.get(event_type, []))

        # Dispatch outside lock
        for callback in listeners:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed for %s", event_type.value)
        return event


class EventCollector:
    """Collects events for later inspection."""

    def __init__(self):
        self._events: list[PlaygroundEvent] = []
        self._lock = RLock()

    def collect(self, event: PlaygroundEvent) -> None:
        """Add an event to the collection."""
        with self._lock:
            self._events.append(event)

    def get_events(self) -> list[PlaygroundEvent]:
        """Get all collected events."""
        with self._lock:
            return list(self._events)

    def get_events_by_type(self, event_type: PlaygroundEventType) -> list[PlaygroundEvent]:
        """Get events of a specific type."""
        with self._lock:
            return [e for e in self._events if e.event_type == event_type]

    def clear(self) -> None:
        with self._lock:
            self._events = []
