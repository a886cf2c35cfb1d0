"""Core domain models."""

from core.models.payment import (
    Payment, DirectPayment, AutoClearPayment, PaymentCreate,
    DIRECT_SOURCE, AUTO_CLEAR_SOURCE, is_customer_money,
)
from core.models.debt import (
    Debt, DebtCreate, DebtState, DebtStatus,
    STORE_CREDIT_REASON, debt_status, days_until_due,
)
from core.models.customer import Customer, CustomerCreate
from core.models.summary import DebtSummary, DashboardSummary
from core.models.account import UserTier

__all__ = [
    # Payment
    "Payment", "DirectPayment", "AutoClearPayment", "PaymentCreate",
    "DIRECT_SOURCE", "AUTO_CLEAR_SOURCE", "is_customer_money",
    # Debt
    "Debt", "DebtCreate", "DebtState", "DebtStatus",
    "STORE_CREDIT_REASON", "debt_status", "days_until_due",
    # Customer
    "Customer", "CustomerCreate",
    # Summaries
    "DebtSummary", "DashboardSummary",
    # Account
    "UserTier",
]
