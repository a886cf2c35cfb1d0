"""Shared test fixtures for the ledger test suite."""

import pytest
from datetime import datetime, timezone
from uuid import UUID
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Drop cached Vault clients so they pick up env vars
import clients.vault_client as vault_module
vault_module.reset()

from core.audit import AuditLogger
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.services.ledger_service import LedgerService
from core.store import DebtStore


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - use for isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")

# Fixed clock for allocator and summary tests
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID (for isolation tests)."""
    return TEST_USER_B_ID


@pytest.fixture
def now() -> datetime:
    return NOW


# =============================================================================
# LEDGER FIXTURES
# =============================================================================


@pytest.fixture
def config(tmp_path) -> LedgerConfig:
    """Default config with snapshots under the test's tmp dir."""
    return LedgerConfig(local_snapshot_dir=tmp_path / "snapshots", outbox_retry_delay_seconds=0)


@pytest.fixture
def store() -> DebtStore:
    return DebtStore()


@pytest.fixture
def audit(test_user_id) -> AuditLogger:
    return AuditLogger(test_user_id)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def ledger(test_user_id, store, audit, event_bus, config) -> LedgerService:
    """Free tier ledger for the primary test user."""
    return LedgerService(
        user_id=test_user_id,
        store=store,
        audit=audit,
        event_bus=event_bus,
        config=config,
    )
