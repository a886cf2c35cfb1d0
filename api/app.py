"""Application factory for the ledger HTTP API."""

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from core.services.ledger_service import LedgerService


def create_app(ledger: LedgerService) -> FastAPI:
    """
    Build the API around one user's ledger.

    The ledger is passed in, never looked up globally, so each session
    (and each test) gets its own app.
    """
    app = FastAPI(title="TrackDeni Ledger")
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(ledger), prefix="/api")
    app.include_router(create_actions_router(ledger), prefix="/api")

    return app
