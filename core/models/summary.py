"""Read-side summary models."""

from decimal import Decimal

from pydantic import BaseModel

from utils.money import ZERO


class DebtSummary(BaseModel):
    """Per-customer totals."""

    total_owed: Decimal = ZERO
    total_paid: Decimal = ZERO
    active_debts: int = 0
    store_credit: Decimal = ZERO
    net_owed: Decimal = ZERO


class DashboardSummary(BaseModel):
    """Ledger-wide totals for the home screen."""

    total_owed: Decimal = ZERO
    total_paid: Decimal = ZERO
    customer_count: int = 0
    active_debts: int = 0
    overdue_debts: int = 0
    store_credit: Decimal = ZERO
