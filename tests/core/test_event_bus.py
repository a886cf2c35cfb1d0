"""Tests for EventBus."""

import logging
from uuid import uuid4

import pytest

from core.event_bus import EventBus
from core.events import CustomerCreated, DebtCreated
from core.models import Customer, Debt
from utils.timezone import now_utc


# =============================================================================
# FIXTURES - lightweight in-memory records
# =============================================================================


@pytest.fixture
def _customer():
    return Customer(id=uuid4(), name="Test Customer", created_at=now_utc())


@pytest.fixture
def _debt():
    now = now_utc()
    return Debt(id=uuid4(), amount="25", reason="Tea", date_borrowed=now, created_at=now)


# =============================================================================
# SUBSCRIBE AND PUBLISH
# =============================================================================


class TestSubscribeAndPublish:

    def test_single_handler_receives_the_exact_event_object(self, _customer):
        bus = EventBus()
        received = []
        bus.subscribe("CustomerCreated", received.append)

        event = CustomerCreated.create(_customer)
        bus.publish(event)

        assert len(received) == 1
        assert received[0] is event

    def test_multiple_handlers_called_in_subscription_order(self, _customer):
        bus = EventBus()
        order = []
        bus.subscribe("CustomerCreated", lambda e: order.append("A"))
        bus.subscribe("CustomerCreated", lambda e: order.append("B"))
        bus.subscribe("CustomerCreated", lambda e: order.append("C"))

        bus.publish(CustomerCreated.create(_customer))

        assert order == ["A", "B", "C"]

    def test_type_isolation_only_matching_subscribers_called(self, _customer, _debt):
        bus = EventBus()
        debt_calls = []
        customer_calls = []
        bus.subscribe("DebtCreated", debt_calls.append)
        bus.subscribe("CustomerCreated", customer_calls.append)

        bus.publish(DebtCreated.create(_customer, _debt))

        assert len(debt_calls) == 1
        assert customer_calls == []

    def test_no_subscribers_does_not_raise(self, _customer):
        EventBus().publish(CustomerCreated.create(_customer))


# =============================================================================
# HANDLER ERROR ISOLATION
# =============================================================================


class TestHandlerErrorIsolation:

    def test_handler_exception_does_not_propagate(self, _customer):
        bus = EventBus()
        bus.subscribe("CustomerCreated", lambda e: (_ for _ in ()).throw(RuntimeError("boom")))

        # Must not raise
        bus.publish(CustomerCreated.create(_customer))

    def test_handler_exception_is_logged_with_event_type_and_event_id(self, _customer, caplog):
        bus = EventBus()

        def failing_handler(event):
            raise ValueError("sync enqueue failed")

        bus.subscribe("CustomerCreated", failing_handler)

        with caplog.at_level(logging.ERROR, logger="core.event_bus"):
            event = CustomerCreated.create(_customer)
            bus.publish(event)

        assert "sync enqueue failed" in caplog.text
        assert "CustomerCreated" in caplog.text
        assert event.event_id in caplog.text

    def test_second_handler_runs_after_first_handler_raises(self, _customer):
        bus = EventBus()
        seen = []

        def failing_handler(event):
            raise RuntimeError("fail")

        bus.subscribe("CustomerCreated", failing_handler)
        bus.subscribe("CustomerCreated", lambda e: seen.append(e.customer.id))

        bus.publish(CustomerCreated.create(_customer))

        assert seen == [_customer.id]


# =============================================================================
# SUBSCRIPTION FORMS
# =============================================================================


class TestSubscriptionForms:

    def test_subscribe_by_class(self, _customer):
        bus = EventBus()
        received = []
        bus.subscribe(CustomerCreated, received.append)

        bus.publish(CustomerCreated.create(_customer))

        assert len(received) == 1

    def test_catch_all_runs_after_typed_handlers(self, _customer, _debt):
        bus = EventBus()
        order = []
        bus.subscribe_all(lambda e: order.append(("all", type(e).__name__)))
        bus.subscribe(DebtCreated, lambda e: order.append(("typed", type(e).__name__)))

        bus.publish(DebtCreated.create(_customer, _debt))
        bus.publish(CustomerCreated.create(_customer))

        assert order == [
            ("typed", "DebtCreated"),
            ("all", "DebtCreated"),
            ("all", "CustomerCreated"),
        ]

    def test_unsubscribe(self, _customer):
        bus = EventBus()
        received = []
        bus.subscribe(CustomerCreated, received.append)

        assert bus.unsubscribe(CustomerCreated, received.append) is True
        assert bus.unsubscribe("CustomerCreated", received.append) is False
        bus.publish(CustomerCreated.create(_customer))

        assert received == []

    def test_publish_returns_failure_count(self, _customer):
        bus = EventBus()

        def failing_handler(event):
            raise RuntimeError("fail")

        bus.subscribe(CustomerCreated, failing_handler)
        bus.subscribe(CustomerCreated, lambda e: None)
        bus.subscribe_all(failing_handler)

        assert bus.publish(CustomerCreated.create(_customer)) == 2
