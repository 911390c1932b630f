"""
Trustchain — Registry Event Log

In-memory publication of committed registry events.

The registry stages events inside a store transaction and publishes them
here only after commit, so subscribers never see an event for a rejected
call. Subscriber failures are logged and counted but never reach the
operation that produced the event: by the time a callback runs, the state
change it describes is already committed.
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from trustchain.primitives.registry import RegistryEvent, RegistryEventType

logger = structlog.get_logger("trustchain.systems.registry.event_log")

# Callback signature: def handler(event: RegistryEvent) -> None
EventCallback = Callable[[RegistryEvent], None]

# Maximum recent events to keep in the ring buffer per event type
_RECENT_BUFFER_SIZE: int = 100


class EventLog:
    """
    Observer interface for registry events.

    Provides per-type callbacks, catch-all callbacks, and a bounded history
    of recent events per type.
    """

    def __init__(self, buffer_size: int = _RECENT_BUFFER_SIZE) -> None:
        self._logger = logger.bind(component="event_log")

        self._subscribers: dict[RegistryEventType, list[EventCallback]] = defaultdict(list)
        self._global_subscribers: list[EventCallback] = []

        self._recent: dict[RegistryEventType, deque[RegistryEvent]] = defaultdict(
            lambda: deque(maxlen=buffer_size)
        )

        self._total_emitted: int = 0
        self._total_callback_errors: int = 0

    # ─── Subscription ────────────────────────────────────────────────

    def subscribe(
        self,
        event_type: RegistryEventType,
        callback: EventCallback,
    ) -> None:
        """Register a callback for a specific event type."""
        self._subscribers[event_type].append(callback)

    def subscribe_all(self, callback: EventCallback) -> None:
        """Register a callback that receives every event."""
        self._global_subscribers.append(callback)

    # ─── Emission ────────────────────────────────────────────────────

    def publish(self, events: Iterable[RegistryEvent]) -> None:
        """Publish committed events in order."""
        for event in events:
            self.emit(event)

    def emit(self, event: RegistryEvent) -> None:
        self._total_emitted += 1
        self._recent[event.event_type].append(event)

        callbacks = list(self._subscribers.get(event.event_type, []))
        callbacks.extend(self._global_subscribers)

        for callback in callbacks:
            try:
                callback(event)
            except Exception as exc:
                self._total_callback_errors += 1
                self._logger.error(
                    "event_callback_error",
                    event_type=event.event_type.value,
                    identity=event.identity,
                    callback=getattr(callback, "__name__", str(callback)),
                    error=str(exc),
                )

    # ─── Query ───────────────────────────────────────────────────────

    def recent(
        self,
        event_type: RegistryEventType,
        limit: int = 10,
    ) -> list[RegistryEvent]:
        """Return recent events of a given type (most recent first)."""
        buf = self._recent.get(event_type)
        if not buf:
            return []
        items = list(buf)
        items.reverse()
        return items[:limit]

    # ─── Stats ───────────────────────────────────────────────────────

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "total_emitted": self._total_emitted,
            "callback_errors": self._total_callback_errors,
            "subscriber_count": sum(
                len(v) for v in self._subscribers.values()
            ) + len(self._global_subscribers),
            "recent_buffer_sizes": {
                et.value: len(buf) for et, buf in self._recent.items()
            },
        }
