"""
Handlers that forward ledger changes to the sync outbox.

Every customer-changing event enqueues the customer record carried by the
event, so the stored snapshot always matches a state the ledger actually
held. CustomerDeleted enqueues a delete instead.
"""

import logging
from typing import Callable

from core.event_bus import EventBus
from core.events import (
    CustomerCreated,
    CustomerDeleted,
    CustomerEvent,
    DebtCreated,
    DebtDeleted,
    DebtEvent,
    DebtMarkedPaid,
    PaymentRecorded,
)
from core.outbox import SyncOutbox

logger = logging.getLogger(__name__)

CUSTOMER_CHANGING_EVENTS = (
    CustomerCreated,
    DebtCreated,
    DebtDeleted,
    DebtMarkedPaid,
    PaymentRecorded,
)


def handle_customer_changed(outbox: SyncOutbox) -> Callable:
    """
    Factory that returns a handler enqueuing a customer snapshot.

    Args:
        outbox: SyncOutbox instance

    Returns:
        Handler callable for customer and debt events
    """

    def handler(event: CustomerEvent | DebtEvent):
        if event.user_id is None:
            logger.warning("Skipping sync for %s without user_id", type(event).__name__)
            return
        outbox.enqueue_upsert(event.user_id, event.customer)

    return handler


def handle_customer_deleted(outbox: SyncOutbox) -> Callable:
    """Factory that returns a handler enqueuing a customer delete."""

    def handler(event: CustomerDeleted):
        if event.user_id is None:
            logger.warning("Skipping sync for CustomerDeleted without user_id")
            return
        outbox.enqueue_delete(event.user_id, event.customer.id)

    return handler


def register_sync_handlers(event_bus: EventBus, outbox: SyncOutbox) -> None:
    """Subscribe the sync handlers to every event that changes stored state."""
    on_changed = handle_customer_changed(outbox)
    for event_type in CUSTOMER_CHANGING_EVENTS:
        event_bus.subscribe(event_type, on_changed)
    event_bus.subscribe(CustomerDeleted, handle_customer_deleted(outbox))
