"""Synchronous publish/subscribe registry for engine events.

Callbacks run on the thread that calls :meth:`EventBus.publish` (the
engine tick).  Each subscriber is isolated: one that raises is logged
and the remaining subscribers still receive the event.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

import structlog

from flowsense.models import EventKind

logger = structlog.get_logger(__name__)

Subscriber = Callable[[Any], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[EventKind, list[Subscriber]] = {kind: [] for kind in EventKind}
        self._lock = threading.Lock()

    def subscribe(self, kind: EventKind | str, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for *kind*; return a function that unsubscribes it.

        Raises ``ValueError`` for an unknown event kind.
        """
        event_kind = EventKind(kind)
        with self._lock:
            self._subscribers[event_kind].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._subscribers[event_kind].remove(callback)
                except ValueError:
                    pass

        return unsubscribe

    def publish(self, kind: EventKind, payload: Any) -> int:
        """Deliver *payload* to every subscriber of *kind*; return the success count."""
        with self._lock:
            subscribers = list(self._subscribers[kind])

        delivered = 0
        for callback in subscribers:
            try:
                callback(payload)
                delivered += 1
            except Exception:
                logger.exception(
                    "events.subscriber_error",
                    kind=kind.value,
                    subscriber=getattr(callback, "__qualname__", repr(callback)),
                )
        return delivered

    def subscriber_count(self, kind: EventKind | str) -> int:
        with self._lock:
            return len(self._subscribers[EventKind(kind)])

    def clear(self) -> None:
        with self._lock:
            for subscribers in self._subscribers.values():
                subscribers.clear()
