"""POST /api/actions - unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.allocator import AllocationResult
from core.models import CustomerCreate, DebtCreate, PaymentCreate
from core.services.ledger_service import LedgerService


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(ledger: LedgerService) -> APIRouter:
    router = APIRouter()

    handlers = {
        "customer": CustomerHandler(ledger),
        "debt": DebtHandler(ledger),
        "payment": PaymentHandler(ledger),
        "account": AccountHandler(ledger),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(body.data)
        request_id = getattr(request.state, "request_id", None)
        return success_response(result, request_id).model_dump(mode="json")

    return router


def allocation_to_dict(result: AllocationResult) -> dict:
    """JSON-ready view of an allocation, with the debts it touched."""
    return {
        "customer_id": str(result.customer_id),
        "debt_id": str(result.debt_id),
        "amount": str(result.amount),
        "overpayment": str(result.overpayment),
        "auto_cleared": [
            {"debt_id": str(a.debt_id), "amount": str(a.amount), "cleared": a.cleared}
            for a in result.auto_cleared
        ],
        "store_credit_issued": str(result.store_credit_issued),
        "credit_entry": (
            result.credit_entry.model_dump(mode="json") if result.credit_entry else None
        ),
        "debt": result.target.model_dump(mode="json"),
    }


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class CustomerHandler:
    ALLOWED_ACTIONS = {"create", "delete"}

    def __init__(self, ledger: LedgerService):
        self.ledger = ledger

    def _handle_create(self, data: dict):
        customer = self.ledger.add_customer(CustomerCreate(**data))
        return customer.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        customer_id = UUID(data["id"])
        deleted = self.ledger.delete_customer(customer_id)
        if not deleted:
            raise ValueError(f"Customer {customer_id} not found")
        return {"deleted": True}


class DebtHandler:
    ALLOWED_ACTIONS = {"create", "delete", "mark_paid"}

    def __init__(self, ledger: LedgerService):
        self.ledger = ledger

    def _handle_create(self, data: dict):
        customer_id = UUID(data.pop("customer_id"))
        debt = self.ledger.add_debt(customer_id, DebtCreate(**data))
        return debt.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        customer_id = UUID(data["customer_id"])
        debt_id = UUID(data["id"])
        deleted = self.ledger.delete_debt(customer_id, debt_id)
        if not deleted:
            raise ValueError(f"Debt {debt_id} not found")
        return {"deleted": True}

    def _handle_mark_paid(self, data: dict):
        customer_id = UUID(data["customer_id"])
        debt_id = UUID(data["id"])
        debt = self.ledger.mark_debt_as_paid(customer_id, debt_id)
        if debt is None:
            raise ValueError(f"Debt {debt_id} not found")
        return debt.model_dump(mode="json")


class PaymentHandler:
    ALLOWED_ACTIONS = {"record"}

    def __init__(self, ledger: LedgerService):
        self.ledger = ledger

    def _handle_record(self, data: dict):
        payment = PaymentCreate(**data)
        result = self.ledger.record_payment(payment.customer_id, payment.debt_id, payment.amount)
        if result is None:
            raise ValueError(f"Debt {payment.debt_id} not found")
        return allocation_to_dict(result)


class AccountHandler:
    ALLOWED_ACTIONS = {"upgrade"}

    def __init__(self, ledger: LedgerService):
        self.ledger = ledger

    def _handle_upgrade(self, data: dict):
        self.ledger.upgrade_to_pro()
        return account_to_dict(self.ledger)


def account_to_dict(ledger: LedgerService) -> dict:
    return {
        "tier": ledger.tier.value,
        "customer_limit": ledger.get_customer_limit(),
        "remaining_customer_slots": ledger.get_remaining_customer_slots(),
    }
