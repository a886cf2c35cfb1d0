"""Tests for core/summary.py - read-side aggregation."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from core.models import AutoClearPayment, Customer, Debt, DirectPayment
from core.summary import customer_summary, dashboard, store_credit, total_owed, total_paid

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_debt(amount, payments=(), paid=None, due_date=None) -> Debt:
    debt = Debt(
        id=uuid4(),
        amount=amount,
        reason="Goods",
        date_borrowed=NOW - timedelta(days=5),
        due_date=due_date,
        created_at=NOW - timedelta(days=5),
    )
    for payment in payments:
        debt = debt.with_payment(payment)
    if paid is not None:
        debt = debt.model_copy(update={"paid": paid})
    return debt


def make_customer(*debts) -> Customer:
    return Customer(id=uuid4(), name="Juma", debts=debts, created_at=NOW)


class TestTotals:
    """total_owed() and total_paid()."""

    def test_owed_sums_remaining_of_unpaid_debts(self):
        customer = make_customer(
            make_debt("100", payments=[DirectPayment(amount=40, date=NOW)]),
            make_debt("50"),
        )
        assert total_owed([customer]) == Decimal("110.00")

    def test_owed_ignores_paid_and_credit(self):
        customer = make_customer(
            make_debt("100", paid=True),
            make_debt("-30"),
        )
        assert total_owed([customer]) == Decimal("0.00")

    def test_paid_excludes_auto_clear(self):
        customer = make_customer(
            make_debt("100", payments=[
                DirectPayment(amount=60, date=NOW),
                AutoClearPayment(amount=40, date=NOW),
            ]),
        )
        assert total_paid([customer]) == Decimal("60.00")

    def test_empty_ledger(self):
        assert total_owed([]) == Decimal("0.00")
        assert total_paid([]) == Decimal("0.00")


class TestCustomerSummary:
    """customer_summary()."""

    def test_unknown_customer_is_all_zero(self):
        summary = customer_summary(None)
        assert summary.total_owed == Decimal("0.00")
        assert summary.active_debts == 0
        assert summary.net_owed == Decimal("0.00")

    def test_net_owed_nets_store_credit(self):
        customer = make_customer(make_debt("100"), make_debt("-30"))
        summary = customer_summary(customer)

        assert summary.total_owed == Decimal("100.00")
        assert summary.store_credit == Decimal("30.00")
        assert summary.net_owed == Decimal("70.00")
        assert summary.active_debts == 1

    def test_net_owed_never_negative(self):
        customer = make_customer(make_debt("10"), make_debt("-30"))
        assert customer_summary(customer).net_owed == Decimal("0.00")

    def test_store_credit_positive(self):
        assert store_credit(make_customer(make_debt("-12.50"), make_debt("-7.50"))) == Decimal("20.00")


class TestDashboard:
    """dashboard()."""

    def test_counts(self):
        customers = [
            make_customer(
                make_debt("100", due_date=NOW - timedelta(days=3)),
                make_debt("50", due_date=NOW + timedelta(days=10)),
                make_debt("20", paid=True),
            ),
            make_customer(make_debt("-15")),
        ]

        summary = dashboard(customers, NOW)

        assert summary.customer_count == 2
        assert summary.active_debts == 2
        assert summary.overdue_debts == 1
        assert summary.total_owed == Decimal("150.00")
        assert summary.store_credit == Decimal("15.00")
