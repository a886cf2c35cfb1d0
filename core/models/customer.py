"""Customer domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from core.models.debt import Debt


class CustomerCreate(BaseModel):
    """Data required to create a customer."""

    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field("", max_length=50)

    @field_validator("name")
    @classmethod
    def require_name_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("phone", mode="before")
    @classmethod
    def default_phone(cls, value: str | None) -> str:
        return (value or "").strip()


class Customer(BaseModel):
    """Full customer entity with its debts, in insertion order."""

    id: UUID
    name: str
    phone: str = ""
    debts: tuple[Debt, ...] = ()
    created_at: datetime

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def reject_duplicate_debt_ids(self) -> "Customer":
        seen = set()
        for debt in self.debts:
            if debt.id in seen:
                raise ValueError(f"Duplicate debt id {debt.id} on customer {self.id}")
            seen.add(debt.id)
        return self

    def find_debt(self, debt_id: UUID) -> Debt | None:
        for debt in self.debts:
            if debt.id == debt_id:
                return debt
        return None

    @property
    def credit_entries(self) -> list[Debt]:
        return [d for d in self.debts if d.is_credit]
