"""Tests for core domain models - validators and derived state."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pydantic import TypeAdapter, ValidationError
from uuid import uuid4

from core.models import (
    AutoClearPayment,
    Customer,
    CustomerCreate,
    Debt,
    DebtCreate,
    DebtState,
    DebtStatus,
    DirectPayment,
    Payment,
    PaymentCreate,
    days_until_due,
    debt_status,
    is_customer_money,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_debt(amount="100", due_date=None, **kwargs) -> Debt:
    return Debt(
        id=uuid4(),
        amount=amount,
        reason="Flour",
        date_borrowed=NOW - timedelta(days=10),
        due_date=due_date,
        created_at=NOW - timedelta(days=10),
        **kwargs,
    )


class TestCustomerCreate:
    """Tests for CustomerCreate validators."""

    def test_strips_name(self):
        assert CustomerCreate(name="  Amina  ").name == "Amina"

    def test_rejects_blank_name(self):
        with pytest.raises(ValidationError, match="blank"):
            CustomerCreate(name="   ")

    def test_phone_defaults_to_empty(self):
        assert CustomerCreate(name="Amina").phone == ""
        assert CustomerCreate(name="Amina", phone=None).phone == ""


class TestCustomer:
    """Tests for the Customer entity."""

    def test_rejects_duplicate_debt_ids(self):
        debt = make_debt()
        with pytest.raises(ValidationError, match="Duplicate debt id"):
            Customer(id=uuid4(), name="Amina", debts=(debt, debt), created_at=NOW)

    def test_find_debt(self):
        debt = make_debt()
        customer = Customer(id=uuid4(), name="Amina", debts=(debt,), created_at=NOW)
        assert customer.find_debt(debt.id) == debt
        assert customer.find_debt(uuid4()) is None

    def test_is_immutable(self):
        customer = Customer(id=uuid4(), name="Amina", created_at=NOW)
        with pytest.raises(ValidationError):
            customer.name = "Other"


class TestDebtCreate:
    """Tests for DebtCreate validators."""

    def test_amount_rounded_to_cents(self):
        assert DebtCreate(amount="10.005", reason="Rice").amount == Decimal("10.01")

    @pytest.mark.parametrize("amount", [0, "-5", "0.001"])
    def test_rejects_non_positive_amount(self, amount):
        with pytest.raises(ValidationError):
            DebtCreate(amount=amount, reason="Rice")

    def test_rejects_blank_reason(self):
        with pytest.raises(ValidationError, match="blank"):
            DebtCreate(amount=10, reason="  ")

    def test_naive_due_date_read_as_utc(self):
        data = DebtCreate(amount=10, reason="Rice", due_date=datetime(2024, 4, 1))
        assert data.due_date.tzinfo == timezone.utc


class TestPayment:
    """Tests for the tagged payment variants."""

    def test_missing_source_reads_as_direct(self):
        adapter = TypeAdapter(Payment)
        payment = adapter.validate_python({"amount": "5", "date": NOW.isoformat()})
        assert isinstance(payment, DirectPayment)

    def test_null_source_reads_as_direct(self):
        adapter = TypeAdapter(Payment)
        payment = adapter.validate_python({"amount": "5", "date": NOW.isoformat(), "source": None})
        assert isinstance(payment, DirectPayment)

    def test_auto_clear_tag(self):
        adapter = TypeAdapter(Payment)
        payment = adapter.validate_python({
            "amount": "5",
            "date": NOW.isoformat(),
            "source": "overpayment_auto_clear",
        })
        assert isinstance(payment, AutoClearPayment)

    def test_is_customer_money(self):
        assert is_customer_money(DirectPayment(amount=5, date=NOW)) is True
        assert is_customer_money(AutoClearPayment(amount=5, date=NOW)) is False

    def test_payment_create_rejects_zero(self):
        with pytest.raises(ValidationError):
            PaymentCreate(customer_id=uuid4(), debt_id=uuid4(), amount="0")

    def test_payment_create_rejects_garbage(self):
        with pytest.raises(ValidationError):
            PaymentCreate(customer_id=uuid4(), debt_id=uuid4(), amount="abc")


class TestDebt:
    """Tests for Debt derived state."""

    def test_with_payment_partial(self):
        debt = make_debt("100").with_payment(DirectPayment(amount=40, date=NOW))
        assert debt.paid is False
        assert debt.remaining == Decimal("60.00")
        assert debt.state == DebtState.PARTIALLY_PAID

    def test_with_payment_full(self):
        debt = make_debt("100").with_payment(DirectPayment(amount=100, date=NOW))
        assert debt.paid is True
        assert debt.remaining == Decimal("0.00")
        assert debt.state == DebtState.PAID

    def test_paid_recomputed_from_payments(self):
        debt = make_debt("100", paid=True).with_payment(DirectPayment(amount=40, date=NOW))
        assert debt.paid is False
        assert debt.remaining == Decimal("60.00")

    def test_credit_entry_never_paid(self):
        credit = make_debt("-20").with_payment(DirectPayment(amount=50, date=NOW))
        assert credit.is_credit
        assert credit.paid is False
        assert credit.remaining == Decimal("0.00")

    def test_customer_paid_excludes_auto_clear(self):
        debt = make_debt("100")
        debt = debt.with_payment(DirectPayment(amount=30, date=NOW))
        debt = debt.with_payment(AutoClearPayment(amount=20, date=NOW))
        assert debt.total_paid == Decimal("50.00")
        assert debt.customer_paid == Decimal("30.00")

    def test_is_overdue_is_strict(self):
        assert make_debt(due_date=NOW - timedelta(seconds=1)).is_overdue(NOW)
        assert not make_debt(due_date=NOW).is_overdue(NOW)
        assert not make_debt().is_overdue(NOW)

    def test_json_round_trip_keeps_payment_tags(self):
        debt = make_debt("100").with_payment(AutoClearPayment(amount=20, date=NOW))
        restored = Debt.model_validate(debt.model_dump(mode="json"))
        assert restored == debt
        assert isinstance(restored.payments[0], AutoClearPayment)


class TestDebtStatus:
    """Tests for debt_status() and days_until_due()."""

    def test_paid(self):
        assert debt_status(make_debt(paid=True), NOW) == DebtStatus.PAID

    def test_no_due_date(self):
        assert debt_status(make_debt(), NOW) == DebtStatus.NO_DUE_DATE

    def test_overdue_by_calendar_day(self):
        yesterday = make_debt(due_date=NOW - timedelta(days=1))
        assert debt_status(yesterday, NOW) == DebtStatus.OVERDUE

    def test_due_earlier_today_is_not_overdue(self):
        earlier_today = make_debt(due_date=NOW - timedelta(hours=2))
        assert debt_status(earlier_today, NOW) != DebtStatus.OVERDUE

    def test_due_soon(self):
        assert debt_status(make_debt(due_date=NOW + timedelta(days=2)), NOW) == DebtStatus.DUE_SOON

    def test_active(self):
        assert debt_status(make_debt(due_date=NOW + timedelta(days=10)), NOW) == DebtStatus.ACTIVE

    def test_days_until_due(self):
        assert days_until_due(make_debt(due_date=NOW + timedelta(days=5)), NOW) == 5
        assert days_until_due(make_debt(), NOW) is None
