"""
Ledger session wiring.

Builds one LedgerService per user session with its collaborators: store,
audit trail, event bus, sync outbox and snapshot stores. Nothing here is a
module-level singleton; callers hold the session and pass the service on.
"""

import logging
from dataclasses import dataclass
from typing import Sequence
from uuid import UUID

from clients.valkey_client import ValkeyClient
from clients.vault_client import get_valkey_url
from core.audit import AuditLogger
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.handlers.sync_handler import register_sync_handlers
from core.models import UserTier
from core.outbox import SyncOutbox
from core.persistence import LocalSnapshotStore, RemoteSnapshotStore, SnapshotStore
from core.services.ledger_service import LedgerService
from core.store import DebtStore

logger = logging.getLogger(__name__)


@dataclass
class LedgerSession:
    """A user's ledger and the machinery that keeps it synced."""

    ledger: LedgerService
    outbox: SyncOutbox
    stores: tuple[SnapshotStore, ...]

    def close(self) -> None:
        """Stop background sync, delivering anything still queued."""
        self.outbox.stop(flush=True)


def _trace_event(event) -> None:
    logger.debug("Ledger event %s (event_id=%s)", type(event).__name__, event.event_id)


def connect_remote_store(config: LedgerConfig) -> RemoteSnapshotStore:
    """
    Connect the remote document store.

    Uses config.valkey_url when set, otherwise reads the URL from Vault.

    Raises:
        redis.ConnectionError: If the store is unreachable
        SecretsError: If the URL must come from Vault and cannot be read
    """
    url = config.valkey_url or get_valkey_url(config.vault_secret_prefix)
    return RemoteSnapshotStore(ValkeyClient(url), key_prefix=config.remote_key_prefix)


def open_ledger_session(
    user_id: UUID,
    config: LedgerConfig | None = None,
    stores: Sequence[SnapshotStore] | None = None,
    tier: UserTier = UserTier.FREE,
    start_sync: bool = True,
) -> LedgerSession:
    """
    Create a ledger for one user, hydrated from the first snapshot store.

    Args:
        user_id: Ledger owner
        config: Ledger configuration (defaults to LedgerConfig())
        stores: Snapshot stores to sync to, in hydration priority order.
            Defaults to a LocalSnapshotStore under config.local_snapshot_dir.
        tier: Account tier of the owner
        start_sync: Start the background outbox worker

    Returns:
        LedgerSession with the service, outbox and stores wired together
    """
    config = config or LedgerConfig()
    if stores is None:
        stores = [LocalSnapshotStore(config.local_snapshot_dir)]
    stores = tuple(stores)

    event_bus = EventBus()
    outbox = SyncOutbox(
        stores,
        max_attempts=config.outbox_max_attempts,
        retry_delay_seconds=config.outbox_retry_delay_seconds,
    )
    register_sync_handlers(event_bus, outbox)
    event_bus.subscribe_all(_trace_event)

    ledger = LedgerService(
        user_id=user_id,
        store=DebtStore(),
        audit=AuditLogger(user_id, max_entries=config.audit_max_entries),
        event_bus=event_bus,
        config=config,
        tier=tier,
    )

    if stores:
        customers = stores[0].load_customers(user_id)
        ledger.hydrate(customers)
        logger.info(
            "Ledger for user %s hydrated from %s store (%d customers)",
            user_id,
            stores[0].name,
            len(customers),
        )

    if start_sync:
        outbox.start()

    return LedgerSession(ledger=ledger, outbox=outbox, stores=stores)


def replace_local_with_remote(session: LedgerSession, remote: SnapshotStore) -> int:
    """
    Overwrite the in-memory ledger and every other store with remote state.

    Used after sign-in on a new device, when the remote copy wins.

    Returns:
        Number of customers loaded
    """
    user_id = session.ledger.user_id
    customers = remote.load_customers(user_id)
    session.ledger.hydrate(customers)

    for store in session.stores:
        if store is not remote:
            store.clear(user_id)
    for customer in customers:
        session.outbox.enqueue_upsert(user_id, customer)

    logger.info("Replaced local ledger for user %s with %d remote customers", user_id, len(customers))
    return len(customers)
