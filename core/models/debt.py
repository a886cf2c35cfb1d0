"""
Debt domain models.

Sign convention: a positive amount is money the customer owes; a negative
amount is a store credit entry the business owes the customer. Credit
entries are only ever synthesized by the payment allocator.

All amounts are Decimals rounded to cents.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from core.models.payment import Payment, is_customer_money
from utils.money import ZERO, money_sum, round2
from utils.timezone import ensure_utc

STORE_CREDIT_REASON = "Store Credit (Overpayment)"


class DebtState(str, Enum):
    """Payment progress of a debt. Transitions only move forward."""

    OPEN = "open"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class DebtStatus(str, Enum):
    """Due-date status used for display and reminders."""

    PAID = "paid"
    NO_DUE_DATE = "no_due_date"
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    ACTIVE = "active"


class DebtCreate(BaseModel):
    """Data required to record a new debt for a customer."""

    amount: Decimal = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=500)
    date_borrowed: datetime | None = None
    due_date: datetime | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, value: Any) -> Decimal:
        return round2(value)

    @field_validator("reason")
    @classmethod
    def require_reason_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("reason must not be blank")
        return value

    @field_validator("date_borrowed", "due_date")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class Debt(BaseModel):
    """Full debt entity as held in the ledger."""

    id: UUID
    amount: Decimal
    reason: str
    date_borrowed: datetime
    due_date: datetime | None = None
    paid: bool = False
    payments: tuple[Payment, ...] = ()
    created_at: datetime

    model_config = {"frozen": True}

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, value: Any) -> Decimal:
        return round2(value)

    @field_validator("date_borrowed", "due_date", "created_at")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @property
    def is_credit(self) -> bool:
        """Whether this record is a store credit entry."""
        return self.amount < ZERO

    @property
    def total_paid(self) -> Decimal:
        """Sum of every payment, auto-clear entries included."""
        return money_sum(p.amount for p in self.payments)

    @property
    def customer_paid(self) -> Decimal:
        """Sum of money actually received from the customer."""
        return money_sum(p.amount for p in self.payments if is_customer_money(p))

    @property
    def remaining(self) -> Decimal:
        """Outstanding balance. Always zero for credit entries."""
        if self.is_credit:
            return ZERO
        return max(ZERO, round2(self.amount - self.total_paid))

    @property
    def state(self) -> DebtState:
        if self.paid:
            return DebtState.PAID
        if self.payments and self.total_paid > ZERO:
            return DebtState.PARTIALLY_PAID
        return DebtState.OPEN

    def is_overdue(self, now: datetime) -> bool:
        """Due date strictly before `now`. Open-ended debts are never overdue."""
        return self.due_date is not None and self.due_date < now

    def with_payment(self, payment: Payment) -> "Debt":
        """
        Return a copy with `payment` appended and `paid` recomputed.

        `paid` follows the payments alone, so a debt forced paid without
        payments reopens when a short payment lands. Credit entries are never
        paid.
        """
        payments = self.payments + (payment,)
        if self.is_credit:
            paid = False
        else:
            paid = money_sum(p.amount for p in payments) >= self.amount
        return self.model_copy(update={"payments": payments, "paid": paid})


def days_until_due(debt: Debt, now: datetime) -> int | None:
    """Whole days from `now` until the due date, negative once overdue."""
    if debt.due_date is None:
        return None
    return int((debt.due_date - now).total_seconds() / 86400)


def debt_status(debt: Debt, now: datetime, due_soon_days: int = 3) -> DebtStatus:
    """
    Classify a debt for display.

    Overdue is judged by calendar day: a debt due earlier today is not yet
    overdue.
    """
    if debt.paid:
        return DebtStatus.PAID
    if debt.due_date is None:
        return DebtStatus.NO_DUE_DATE
    if debt.due_date.date() < now.date():
        return DebtStatus.OVERDUE
    if debt.due_date > now and days_until_due(debt, now) <= due_soon_days:
        return DebtStatus.DUE_SOON
    return DebtStatus.ACTIVE
