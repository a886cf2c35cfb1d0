"""
Read-side aggregation over the customer/debt graph.

Pure functions with no side effects. Money received is counted from direct
payments only; auto-clear entries redistribute money already counted on the
overpaid debt.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from core.models import Customer, DashboardSummary, Debt, DebtStatus, DebtSummary, debt_status
from utils.money import ZERO, money_sum, round2


def _is_active(debt: Debt) -> bool:
    return debt.amount > ZERO and not debt.paid and debt.remaining > ZERO


def customer_owed(customer: Customer) -> Decimal:
    """Outstanding balance across one customer's unpaid debts."""
    return money_sum(d.remaining for d in customer.debts if d.amount > ZERO and not d.paid)


def total_owed(customers: Iterable[Customer]) -> Decimal:
    """Outstanding balance across all customers. Never negative."""
    return money_sum(customer_owed(c) for c in customers)


def customer_received(customer: Customer) -> Decimal:
    """Money actually received from one customer."""
    return money_sum(d.customer_paid for d in customer.debts)


def total_paid(customers: Iterable[Customer]) -> Decimal:
    """Money actually received across all customers."""
    return money_sum(customer_received(c) for c in customers)


def store_credit(customer: Customer) -> Decimal:
    """Store credit held by a customer, as a positive amount."""
    return money_sum(abs(d.amount) for d in customer.debts if d.is_credit)


def customer_summary(customer: Customer | None) -> DebtSummary:
    """
    Totals for one customer.

    net_owed nets store credit against the balance for display only; the
    debts themselves stay open until payments actually close them.
    """
    if customer is None:
        return DebtSummary()

    owed = customer_owed(customer)
    credit = store_credit(customer)

    return DebtSummary(
        total_owed=owed,
        total_paid=customer_received(customer),
        active_debts=sum(1 for d in customer.debts if _is_active(d)),
        store_credit=credit,
        net_owed=max(ZERO, round2(owed - credit)),
    )


def dashboard(customers: Iterable[Customer], now: datetime, due_soon_days: int = 3) -> DashboardSummary:
    """Ledger-wide totals for the home screen."""
    customers = list(customers)
    debts = [d for c in customers for d in c.debts]

    return DashboardSummary(
        total_owed=total_owed(customers),
        total_paid=total_paid(customers),
        customer_count=len(customers),
        active_debts=sum(1 for d in debts if _is_active(d)),
        overdue_debts=sum(
            1 for d in debts
            if _is_active(d) and debt_status(d, now, due_soon_days) == DebtStatus.OVERDUE
        ),
        store_credit=money_sum(store_credit(c) for c in customers),
    )
