"""
Event bus for ledger domain events.

Handlers run synchronously on the publishing thread, which is the thread
holding the customer's lock, so a customer's events reach handlers in the
order its state changed. A failing handler is logged and skipped; the
in-memory swap and audit entry it follows are already in place.
"""

import logging
import threading
from typing import Callable

from core.events import LedgerEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[LedgerEvent], None]


def _event_name(event_type: type[LedgerEvent] | str) -> str:
    return event_type if isinstance(event_type, str) else event_type.__name__


class EventBus:
    """
    Per-ledger pub/sub keyed by event class.

    Usage:
        bus = EventBus()
        bus.subscribe(PaymentRecorded, on_payment)
        bus.subscribe_all(trace)                 # every event, after typed handlers
        failures = bus.publish(PaymentRecorded.create(customer, debt))

    Payments for different customers publish from different threads, so the
    subscriber table is copied under a lock before dispatch.
    """

    def __init__(self):
        self._handlers: dict[str, list[EventHandler]] = {}
        self._catch_all: list[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, event_type: type[LedgerEvent] | str, handler: EventHandler) -> None:
        """Call `handler` for every published event of exactly `event_type`."""
        name = _event_name(event_type)
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Call `handler` for every event, after the typed handlers."""
        with self._lock:
            self._catch_all.append(handler)

    def unsubscribe(self, event_type: type[LedgerEvent] | str, handler: EventHandler) -> bool:
        """Remove a typed handler. Returns False if it was not subscribed."""
        name = _event_name(event_type)
        with self._lock:
            handlers = self._handlers.get(name, [])
            if handler not in handlers:
                return False
            handlers.remove(handler)
            return True

    def publish(self, event: LedgerEvent) -> int:
        """
        Deliver `event` to its typed handlers, then to catch-all handlers.

        Returns:
            Number of handlers that raised
        """
        name = type(event).__name__
        with self._lock:
            handlers = list(self._handlers.get(name, ())) + list(self._catch_all)

        failures = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                failures += 1
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(handler, "__name__", repr(handler)),
                    name,
                    event.event_id,
                )
        return failures
