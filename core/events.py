"""
Domain events for the ledger.

Immutable event objects that represent state changes in a user's ledger.
Events decouple the ledger from its collaborators: the ledger service
publishes what happened, and handlers (sync, notifications) react without
the service knowing who's listening.

Event Categories:
- CustomerEvent: Customer lifecycle (create, delete)
- DebtEvent: Debt lifecycle (create, delete, payment, mark paid, store credit)

Every event carries the customer record as it stands after the change, so
handlers never re-read the store and never observe a later state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class LedgerEvent:
    """Base class for all ledger domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)
    user_id: UUID | None = None


# =============================================================================
# CUSTOMER EVENTS
# =============================================================================


@dataclass(frozen=True)
class CustomerEvent(LedgerEvent):
    """Events related to customer lifecycle."""
    customer: Any = None  # Customer - using Any to avoid circular import


@dataclass(frozen=True)
class CustomerCreated(CustomerEvent):
    """A new customer was added."""

    @classmethod
    def create(cls, customer: Any, user_id: UUID | None = None) -> "CustomerCreated":
        return cls(customer=customer, user_id=user_id)


@dataclass(frozen=True)
class CustomerDeleted(CustomerEvent):
    """A customer and all of their debts were removed."""

    @classmethod
    def create(cls, customer: Any, user_id: UUID | None = None) -> "CustomerDeleted":
        return cls(customer=customer, user_id=user_id)


# =============================================================================
# DEBT EVENTS
# =============================================================================


@dataclass(frozen=True)
class DebtEvent(LedgerEvent):
    """Events related to debt lifecycle. `customer` is the post-change record."""
    customer: Any = None
    debt: Any = None


@dataclass(frozen=True)
class DebtCreated(DebtEvent):
    """A debt was recorded for a customer."""

    @classmethod
    def create(cls, customer: Any, debt: Any, user_id: UUID | None = None) -> "DebtCreated":
        return cls(customer=customer, debt=debt, user_id=user_id)


@dataclass(frozen=True)
class DebtDeleted(DebtEvent):
    """A debt was removed from a customer."""

    @classmethod
    def create(cls, customer: Any, debt: Any, user_id: UUID | None = None) -> "DebtDeleted":
        return cls(customer=customer, debt=debt, user_id=user_id)


@dataclass(frozen=True)
class DebtMarkedPaid(DebtEvent):
    """A debt was forced to paid without a payment."""

    @classmethod
    def create(cls, customer: Any, debt: Any, user_id: UUID | None = None) -> "DebtMarkedPaid":
        return cls(customer=customer, debt=debt, user_id=user_id)


@dataclass(frozen=True)
class PaymentRecorded(DebtEvent):
    """A payment was applied, possibly cascading onto sibling debts."""
    allocation: Any = None  # AllocationResult

    @classmethod
    def create(cls, customer: Any, allocation: Any, user_id: UUID | None = None) -> "PaymentRecorded":
        return cls(customer=customer, debt=allocation.target, allocation=allocation, user_id=user_id)


@dataclass(frozen=True)
class StoreCreditIssued(DebtEvent):
    """An overpayment left surplus that became a store credit entry."""

    @classmethod
    def create(cls, customer: Any, credit_entry: Any, user_id: UUID | None = None) -> "StoreCreditIssued":
        return cls(customer=customer, debt=credit_entry, user_id=user_id)
