"""
Ledger service for one user's customers, debts and payments.

One instance per user session, passed to callers explicitly. All mutations
go through here: the in-memory store changes first, then the change is
audited and published as a domain event (which the sync handlers forward to
the outbox). Readers get pure summaries computed on demand.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID, uuid4

from core.allocator import AllocationResult, PaymentAllocator
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.events import (
    CustomerCreated,
    CustomerDeleted,
    DebtCreated,
    DebtDeleted,
    DebtMarkedPaid,
    PaymentRecorded,
    StoreCreditIssued,
)
from core.models import (
    Customer,
    CustomerCreate,
    DashboardSummary,
    Debt,
    DebtCreate,
    DebtSummary,
    UserTier,
)
from core.store import DebtStore
from core import summary
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for ledger operations on behalf of one user."""

    def __init__(
        self,
        user_id: UUID,
        store: DebtStore,
        audit: AuditLogger,
        event_bus: EventBus,
        config: LedgerConfig | None = None,
        tier: UserTier = UserTier.FREE,
    ):
        self.user_id = user_id
        self.store = store
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or LedgerConfig()
        self.tier = tier
        self.allocator = PaymentAllocator(store, self.config)

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    def add_customer(self, data: CustomerCreate) -> Customer:
        """
        Add a new customer.

        Args:
            data: Customer creation data

        Returns:
            Created customer with no debts

        Raises:
            TierLimitError: If the free tier customer limit is reached
        """
        customer = Customer(
            id=uuid4(),
            name=data.name,
            phone=data.phone,
            debts=(),
            created_at=now_utc(),
        )
        self.store.add_customer(customer, max_customers=self.get_customer_limit())

        self.audit.log_change(
            entity_type="customer",
            entity_id=customer.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json")}
        )
        self.event_bus.publish(CustomerCreated.create(customer, user_id=self.user_id))

        return customer

    def get_customer(self, customer_id: UUID) -> Customer | None:
        return self.store.find_customer(customer_id)

    def list_customers(self) -> list[Customer]:
        """All customers in the order they were added."""
        return self.store.list_customers()

    def search_customers(self, query: str, limit: int = 20) -> list[Customer]:
        """
        Case-insensitive partial match on name or phone.

        Args:
            query: Search string
            limit: Maximum results

        Returns:
            Matching customers in the order they were added
        """
        needle = query.strip().lower()
        if not needle:
            return []

        matches = [
            c for c in self.store.list_customers()
            if needle in c.name.lower() or needle in c.phone.lower()
        ]
        return matches[:limit]

    def delete_customer(self, customer_id: UUID) -> bool:
        """
        Delete a customer and all of their debts.

        Returns:
            True if deleted, False if not found
        """
        removed = self.store.delete_customer(customer_id)
        if removed is None:
            return False

        self.audit.log_change(
            entity_type="customer",
            entity_id=customer_id,
            action=AuditAction.DELETE,
            changes={"deleted": removed.model_dump(mode="json")}
        )
        self.event_bus.publish(CustomerDeleted.create(removed, user_id=self.user_id))

        return True

    # =========================================================================
    # DEBTS
    # =========================================================================

    def add_debt(self, customer_id: UUID, data: DebtCreate) -> Debt:
        """
        Record a new debt for a customer.

        Args:
            customer_id: Customer UUID
            data: Debt creation data (amount already rounded to cents)

        Returns:
            Created debt

        Raises:
            ValueError: If customer not found
        """
        now = now_utc()
        debt = Debt(
            id=uuid4(),
            amount=data.amount,
            reason=data.reason,
            date_borrowed=data.date_borrowed or now,
            due_date=data.due_date,
            paid=False,
            payments=(),
            created_at=now,
        )

        with self.store.customer_lock(customer_id):
            customer = self.store.add_debt(customer_id, debt)

            self.audit.log_change(
                entity_type="debt",
                entity_id=debt.id,
                action=AuditAction.CREATE,
                changes={"created": {"customer_id": str(customer_id), **data.model_dump(mode="json")}}
            )
            self.event_bus.publish(DebtCreated.create(customer, debt, user_id=self.user_id))

        return debt

    def delete_debt(self, customer_id: UUID, debt_id: UUID) -> bool:
        """
        Delete one debt.

        Returns:
            True if deleted, False if customer or debt not found
        """
        with self.store.customer_lock(customer_id):
            removed = self.store.delete_debt(customer_id, debt_id)
            if removed is None:
                return False

            self.audit.log_change(
                entity_type="debt",
                entity_id=debt_id,
                action=AuditAction.DELETE,
                changes={"deleted": removed.model_dump(mode="json")}
            )
            self.event_bus.publish(DebtDeleted.create(
                self.store.find_customer(customer_id), removed, user_id=self.user_id
            ))

        return True

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    def record_payment(self, customer_id: UUID, debt_id: UUID, amount) -> AllocationResult | None:
        """
        Record a payment against a debt, cascading any overpayment.

        Args:
            customer_id: Customer UUID
            debt_id: Debt UUID
            amount: Payment amount (str, int, float or Decimal), rounded to cents

        Returns:
            AllocationResult, or None if the customer or debt does not exist.
            A missing id changes nothing.
        """
        # Held across read, allocate and publish so events leave in state order
        with self.store.customer_lock(customer_id):
            before = self.store.find_customer(customer_id)
            result = self.allocator.record_payment(customer_id, debt_id, amount)
            if result is None:
                return None

            customer = self.store.find_customer(customer_id)
            self._audit_debt_changes(before.debts, result.debts)
            self.event_bus.publish(PaymentRecorded.create(customer, result, user_id=self.user_id))

            if result.credit_entry is not None:
                self.event_bus.publish(StoreCreditIssued.create(
                    customer, result.credit_entry, user_id=self.user_id
                ))

        return result

    def mark_debt_as_paid(self, customer_id: UUID, debt_id: UUID) -> Debt | None:
        """
        Mark a debt paid in full without recording a payment.

        No overpayment is inferred and nothing cascades.

        Returns:
            Updated debt, or None if the customer or debt does not exist
        """
        with self.store.customer_lock(customer_id):
            before = self.store.find_customer(customer_id)
            previous = before.find_debt(debt_id) if before else None

            debt = self.allocator.mark_debt_as_paid(customer_id, debt_id)
            if debt is None or previous is None or previous == debt:
                return debt

            self.audit.log_change(
                entity_type="debt",
                entity_id=debt_id,
                action=AuditAction.UPDATE,
                changes={"paid": {"old": previous.paid, "new": debt.paid}}
            )
            self.event_bus.publish(DebtMarkedPaid.create(
                self.store.find_customer(customer_id), debt, user_id=self.user_id
            ))

        return debt

    def _audit_debt_changes(self, old_debts: Iterable[Debt], new_debts: Iterable[Debt]) -> None:
        old_by_id = {d.id: d for d in old_debts}

        for debt in new_debts:
            old = old_by_id.get(debt.id)
            if old is None:
                self.audit.log_change(
                    entity_type="debt",
                    entity_id=debt.id,
                    action=AuditAction.CREATE,
                    changes={"created": debt.model_dump(mode="json")}
                )
                continue

            changes = compute_changes(old.model_dump(mode="json"), debt.model_dump(mode="json"))
            if changes:
                self.audit.log_change(
                    entity_type="debt",
                    entity_id=debt.id,
                    action=AuditAction.UPDATE,
                    changes=changes
                )

    # =========================================================================
    # SUMMARIES
    # =========================================================================

    def get_total_owed(self) -> Decimal:
        return summary.total_owed(self.store.list_customers())

    def get_total_paid(self) -> Decimal:
        return summary.total_paid(self.store.list_customers())

    def get_customer_debt_summary(self, customer_id: UUID) -> DebtSummary:
        """Totals for one customer. All zeros for an unknown customer."""
        return summary.customer_summary(self.store.find_customer(customer_id))

    def get_dashboard(self, now: datetime | None = None) -> DashboardSummary:
        return summary.dashboard(
            self.store.list_customers(),
            now or now_utc(),
            self.config.due_soon_days,
        )

    # =========================================================================
    # TIER
    # =========================================================================

    def is_free_tier(self) -> bool:
        return self.tier == UserTier.FREE

    def can_add_customer(self) -> bool:
        return not self.is_free_tier() or len(self.store) < self.config.free_tier_customer_limit

    def get_customer_limit(self) -> int | None:
        """Customer limit, or None when unlimited."""
        return self.config.free_tier_customer_limit if self.is_free_tier() else None

    def get_remaining_customer_slots(self) -> int | None:
        """Customers that can still be added, or None when unlimited."""
        if not self.is_free_tier():
            return None
        return max(0, self.config.free_tier_customer_limit - len(self.store))

    def upgrade_to_pro(self) -> None:
        if self.tier == UserTier.PRO:
            return
        self.tier = UserTier.PRO
        logger.info("User %s upgraded to pro", self.user_id)

    # =========================================================================
    # HYDRATION
    # =========================================================================

    def hydrate(self, customers: Iterable[Customer]) -> None:
        """
        Replace in-memory state with customers read from a snapshot store.

        Publishes no events: the data already came from storage.
        """
        self.store.load(customers)
