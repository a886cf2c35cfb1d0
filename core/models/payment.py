"""
Payment log entries.

A payment is a tagged variant discriminated by `source`:
- DirectPayment: money actually received from the customer
- AutoClearPayment: surplus from an overpayment on a sibling debt,
  redistributed by the allocator

Auto-clear entries must never be counted as money received, otherwise the
surplus would be counted twice (once on the original overpaid debt).

Stored documents written before the tag existed carry no `source` at all;
they are read back as DirectPayment.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Discriminator, Field, Tag, field_validator, model_validator

from utils.money import round2
from utils.timezone import ensure_utc

DIRECT_SOURCE = "direct"
AUTO_CLEAR_SOURCE = "overpayment_auto_clear"


class _PaymentBase(BaseModel):
    """Fields shared by every payment variant."""

    amount: Decimal = Field(..., ge=0)
    date: datetime

    model_config = {"frozen": True}

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, value: Any) -> Decimal:
        return round2(value)

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class DirectPayment(_PaymentBase):
    """Money received from the customer."""

    source: Literal["direct"] = DIRECT_SOURCE

    @model_validator(mode="before")
    @classmethod
    def drop_null_source(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("source") is None:
            data = {k: v for k, v in data.items() if k != "source"}
        return data


class AutoClearPayment(_PaymentBase):
    """Surplus moved onto this debt from an overpayment elsewhere."""

    source: Literal["overpayment_auto_clear"] = AUTO_CLEAR_SOURCE


def _payment_source(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("source") or DIRECT_SOURCE
    return getattr(value, "source", DIRECT_SOURCE)


Payment = Annotated[
    Union[
        Annotated[DirectPayment, Tag(DIRECT_SOURCE)],
        Annotated[AutoClearPayment, Tag(AUTO_CLEAR_SOURCE)],
    ],
    Discriminator(_payment_source),
]


def is_customer_money(payment: DirectPayment | AutoClearPayment) -> bool:
    """Whether the payment represents money actually received."""
    match payment:
        case DirectPayment():
            return True
        case AutoClearPayment():
            return False
    raise TypeError(f"Unknown payment type: {type(payment).__name__}")


class PaymentCreate(BaseModel):
    """
    A payment as submitted by a caller.

    Stricter than the allocator, which reads bad amounts as zero: requests
    with a non-positive amount are rejected here.
    """

    customer_id: UUID
    debt_id: UUID
    amount: Decimal = Field(..., gt=0)

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, value: Any) -> Decimal:
        return round2(value)
