"""API test fixtures - TestClient around an in-memory ledger."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app


@pytest.fixture
def app(ledger):
    """FastAPI app with middleware, error handlers, and data/actions routes."""
    return create_app(ledger)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def act(client):
    """POST an action and return the response."""

    def _act(domain: str, action: str, data: dict):
        return client.post("/api/actions", json={"domain": domain, "action": action, "data": data})

    return _act
