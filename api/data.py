"""GET /api/data - unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.actions import account_to_dict
from api.base import success_response
from core.models import Customer, days_until_due, debt_status
from core.services.ledger_service import LedgerService
from utils.timezone import now_utc


VALID_TYPES = {"customers", "summary", "totals", "dashboard", "account"}


def create_data_router(ledger: LedgerService) -> APIRouter:
    router = APIRouter()

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        search: str | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "customers":
            data = _handle_customers(ledger, id, search, limit)
        elif type == "summary":
            data = _handle_summary(ledger, id)
        elif type == "totals":
            data = {
                "total_owed": str(ledger.get_total_owed()),
                "total_paid": str(ledger.get_total_paid()),
            }
        elif type == "dashboard":
            data = ledger.get_dashboard().model_dump(mode="json")
        else:
            data = account_to_dict(ledger)

        request_id = getattr(request.state, "request_id", None)
        return success_response(data, request_id).model_dump(mode="json")

    return router


def _customer_detail(ledger: LedgerService, customer: Customer) -> dict:
    now = now_utc()
    data = customer.model_dump(mode="json")
    for debt_data, debt in zip(data["debts"], customer.debts):
        debt_data["status"] = debt_status(debt, now, ledger.config.due_soon_days).value
        debt_data["days_until_due"] = days_until_due(debt, now)
        debt_data["remaining"] = str(debt.remaining)
    data["summary"] = ledger.get_customer_debt_summary(customer.id).model_dump(mode="json")
    return data


def _handle_customers(ledger: LedgerService, id, search, limit):
    if id:
        customer = ledger.get_customer(UUID(id))
        if customer is None:
            raise ValueError(f"Customer {id} not found")
        return _customer_detail(ledger, customer)

    if search:
        customers = ledger.search_customers(search, limit)
    else:
        customers = ledger.list_customers()[:limit]

    return [c.model_dump(mode="json") for c in customers]


def _handle_summary(ledger: LedgerService, id):
    if not id:
        raise ValueError("'summary' type requires 'id' parameter")
    return ledger.get_customer_debt_summary(UUID(id)).model_dump(mode="json")
