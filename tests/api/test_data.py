"""Tests for GET /api/data unified read endpoint."""

from datetime import timedelta
from uuid import uuid4

import pytest

from core.models import CustomerCreate, DebtCreate
from utils.timezone import now_utc


@pytest.fixture
def sample_customer(ledger):
    return ledger.add_customer(CustomerCreate(name="Otieno", phone="0733 111"))


@pytest.fixture
def overdue_debt(ledger, sample_customer):
    return ledger.add_debt(sample_customer.id, DebtCreate(
        amount="300", reason="Paraffin", due_date=now_utc() - timedelta(days=3),
    ))


class TestDataValidation:

    def test_missing_type_returns_400(self, client):
        response = client.get("/api/data")
        assert response.status_code == 400

    def test_unknown_type_returns_400(self, client):
        response = client.get("/api/data", params={"type": "invoices"})
        assert response.status_code == 400
        assert "Unknown type" in response.json()["error"]["message"]


class TestCustomers:

    def test_list(self, client, sample_customer):
        response = client.get("/api/data", params={"type": "customers"})

        assert response.status_code == 200
        assert [c["id"] for c in response.json()["data"]] == [str(sample_customer.id)]

    def test_search(self, client, ledger, sample_customer):
        ledger.add_customer(CustomerCreate(name="Achieng"))

        response = client.get("/api/data", params={"type": "customers", "search": "otie"})

        assert [c["name"] for c in response.json()["data"]] == ["Otieno"]

    def test_detail_includes_status_and_summary(self, client, sample_customer, overdue_debt):
        response = client.get("/api/data", params={"type": "customers", "id": str(sample_customer.id)})

        data = response.json()["data"]
        assert data["debts"][0]["status"] == "overdue"
        assert data["debts"][0]["remaining"] == "300.00"
        assert data["summary"]["total_owed"] == "300.00"

    def test_detail_missing_returns_404(self, client):
        response = client.get("/api/data", params={"type": "customers", "id": str(uuid4())})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestSummaries:

    def test_summary_requires_id(self, client):
        assert client.get("/api/data", params={"type": "summary"}).status_code == 400

    def test_summary(self, client, ledger, sample_customer, overdue_debt):
        ledger.record_payment(sample_customer.id, overdue_debt.id, 400)

        response = client.get("/api/data", params={"type": "summary", "id": str(sample_customer.id)})

        data = response.json()["data"]
        assert data["total_owed"] == "0.00"
        assert data["total_paid"] == "400.00"
        assert data["store_credit"] == "100.00"

    def test_unknown_customer_summary_is_zero(self, client):
        response = client.get("/api/data", params={"type": "summary", "id": str(uuid4())})
        assert response.status_code == 200
        assert response.json()["data"]["total_owed"] == "0.00"

    def test_totals(self, client, ledger, sample_customer, overdue_debt):
        ledger.record_payment(sample_customer.id, overdue_debt.id, 100)

        response = client.get("/api/data", params={"type": "totals"})

        assert response.json()["data"] == {"total_owed": "200.00", "total_paid": "100.00"}

    def test_dashboard(self, client, overdue_debt):
        data = client.get("/api/data", params={"type": "dashboard"}).json()["data"]

        assert data["customer_count"] == 1
        assert data["overdue_debts"] == 1

    def test_account(self, client, sample_customer):
        data = client.get("/api/data", params={"type": "account"}).json()["data"]

        assert data == {"tier": "free", "customer_limit": 5, "remaining_customer_slots": 4}
