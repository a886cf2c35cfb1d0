"""
Payment allocation and overpayment distribution.

A payment is applied to one target debt. Whatever exceeds the target's
outstanding balance cascades onto the customer's other outstanding debts,
overdue ones first, then by soonest due date, with open-ended debts last.
Surplus that nothing can absorb becomes a store credit entry (a debt with a
negative amount).

allocate_payment() is pure: it takes a debt list and returns the new one.
PaymentAllocator wraps it with store lookups, the per-customer lock and the
single atomic swap of the customer's debt list.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID, uuid4

from core.config import LedgerConfig
from core.models import (
    AutoClearPayment,
    Debt,
    DirectPayment,
    STORE_CREDIT_REASON,
)
from core.store import DebtStore
from utils.money import ZERO, parse_amount, round2
from utils.timezone import ensure_utc, now_utc

logger = logging.getLogger(__name__)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class AutoClearApplication:
    """Surplus moved onto one sibling debt."""

    debt_id: UUID
    amount: Decimal
    cleared: bool


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of applying one payment to a customer's debts."""

    customer_id: UUID
    debt_id: UUID
    amount: Decimal
    overpayment: Decimal
    auto_cleared: tuple[AutoClearApplication, ...]
    credit_entry: Debt | None
    debts: tuple[Debt, ...]

    @property
    def store_credit_issued(self) -> Decimal:
        if self.credit_entry is None:
            return ZERO
        return -self.credit_entry.amount

    @property
    def target(self) -> Debt:
        return next(d for d in self.debts if d.id == self.debt_id)


def cascade_order(debts: Iterable[Debt], exclude_debt_id: UUID, now: datetime) -> list[Debt]:
    """
    Debts eligible to absorb surplus, in the order they absorb it.

    Eligible: not the target, a real debt (positive amount), unpaid, with an
    outstanding balance. Ordered overdue first, then by ascending due date;
    debts without a due date sort last. Ties keep list order.
    """
    now = ensure_utc(now)
    candidates = [
        d for d in debts
        if d.id != exclude_debt_id
        and d.amount > ZERO
        and not d.paid
        and d.remaining > ZERO
    ]
    return sorted(
        candidates,
        key=lambda d: (
            not d.is_overdue(now),
            d.due_date is None,
            d.due_date or _FAR_FUTURE,
        ),
    )


def allocate_payment(
    customer_id: UUID,
    debts: Sequence[Debt],
    debt_id: UUID,
    raw_amount,
    now: datetime,
    credit_validity_days: int = 365,
) -> AllocationResult:
    """
    Apply a payment to `debt_id` and distribute any overpayment.

    Args:
        customer_id: Owner of the debts
        debts: The customer's current debt list
        debt_id: Target debt
        raw_amount: Payment amount as received (str, int, float, Decimal).
            Non-numeric or non-positive amounts are recorded as zero.
        now: Timestamp for new payments and for the overdue check.
            Naive values are read as UTC.
        credit_validity_days: Nominal due date offset for a new credit entry

    Returns:
        AllocationResult whose `debts` is the complete new debt list

    Raises:
        ValueError: If `debt_id` is not in `debts`
    """
    now = ensure_utc(now)
    target = next((d for d in debts if d.id == debt_id), None)
    if target is None:
        raise ValueError(f"Debt {debt_id} not found")

    amount = parse_amount(raw_amount)
    remaining_before = max(ZERO, round2(target.amount - target.total_paid))
    overpayment = max(ZERO, round2(amount - remaining_before))

    updated: dict[UUID, Debt] = {
        debt_id: target.with_payment(DirectPayment(amount=amount, date=now))
    }
    applications: list[AutoClearApplication] = []
    credit_entry = None

    if overpayment > ZERO:
        surplus = overpayment

        for candidate in cascade_order(debts, debt_id, now):
            if surplus <= ZERO:
                break

            to_apply = round2(min(surplus, candidate.remaining))
            cleared_debt = candidate.with_payment(AutoClearPayment(amount=to_apply, date=now))
            updated[candidate.id] = cleared_debt
            applications.append(AutoClearApplication(
                debt_id=candidate.id,
                amount=to_apply,
                cleared=cleared_debt.paid,
            ))
            surplus = round2(surplus - to_apply)

        if surplus > ZERO:
            credit_entry = Debt(
                id=uuid4(),
                amount=-surplus,
                reason=STORE_CREDIT_REASON,
                date_borrowed=now,
                due_date=now + timedelta(days=credit_validity_days),
                paid=False,
                payments=(),
                created_at=now,
            )

    new_debts = tuple(updated.get(d.id, d) for d in debts)
    if credit_entry is not None:
        new_debts += (credit_entry,)

    return AllocationResult(
        customer_id=customer_id,
        debt_id=debt_id,
        amount=amount,
        overpayment=overpayment,
        auto_cleared=tuple(applications),
        credit_entry=credit_entry,
        debts=new_debts,
    )


class PaymentAllocator:
    """
    Applies payments against the debt store.

    Missing customers or debts are a silent no-op (None is returned) so a
    caller holding a stale id cannot corrupt or crash the ledger.
    """

    def __init__(self, store: DebtStore, config: LedgerConfig | None = None):
        self.store = store
        self.config = config or LedgerConfig()

    def record_payment(
        self,
        customer_id: UUID,
        debt_id: UUID,
        raw_amount,
        now: datetime | None = None,
    ) -> AllocationResult | None:
        """
        Record a payment and cascade any overpayment.

        Args:
            customer_id: Customer UUID
            debt_id: Debt UUID the payment is made against
            raw_amount: Amount as received; rounded to cents
            now: Override for the current time (defaults to now_utc())

        Returns:
            AllocationResult, or None if the customer or debt does not exist
        """
        with self.store.customer_lock(customer_id):
            customer = self.store.find_customer(customer_id)
            if customer is None:
                logger.warning("Payment ignored: customer %s not found", customer_id)
                return None

            if self.store.find_debt(customer, debt_id) is None:
                logger.warning(
                    "Payment ignored: debt %s not found for customer %s", debt_id, customer_id
                )
                return None

            result = allocate_payment(
                customer_id,
                customer.debts,
                debt_id,
                raw_amount,
                now or now_utc(),
                self.config.credit_validity_days,
            )
            self.store.replace_debts(customer_id, result.debts)

        if result.overpayment > ZERO:
            logger.info(
                "Overpayment of %s on debt %s: %d debts auto-cleared, %s store credit",
                result.overpayment,
                debt_id,
                len(result.auto_cleared),
                result.store_credit_issued,
            )

        return result

    def mark_debt_as_paid(self, customer_id: UUID, debt_id: UUID) -> Debt | None:
        """
        Force a debt to paid without recording a payment.

        No surplus is computed and nothing cascades. Credit entries are left
        untouched since they can never be paid.

        Returns:
            The updated debt, or None if the customer or debt does not exist
        """
        with self.store.customer_lock(customer_id):
            customer = self.store.find_customer(customer_id)
            if customer is None:
                logger.warning("Mark paid ignored: customer %s not found", customer_id)
                return None

            debt = self.store.find_debt(customer, debt_id)
            if debt is None:
                logger.warning(
                    "Mark paid ignored: debt %s not found for customer %s", debt_id, customer_id
                )
                return None

            if debt.is_credit or debt.paid:
                return debt

            paid_debt = debt.model_copy(update={"paid": True})
            self.store.replace_debts(
                customer_id,
                (paid_debt if d.id == debt_id else d for d in customer.debts),
            )

        return paid_debt
