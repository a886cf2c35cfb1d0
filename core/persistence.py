"""
Snapshot stores for the ledger.

A snapshot store holds durable copies of a user's customers, each customer
document carrying its full debt and payment history. Two implementations:

- LocalSnapshotStore: one JSON file per user on local disk
- RemoteSnapshotStore: one JSON document per customer in Valkey, plus an
  index set of customer ids per user

Stores are written to by the sync outbox only. A write failure raises
SyncError and never touches the in-memory ledger.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol
from uuid import UUID

import redis
from pydantic import ValidationError

from clients.valkey_client import ValkeyClient
from core.exceptions import SyncError
from core.models import Customer
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class SnapshotStore(Protocol):
    """Durable per-user storage of customer documents."""

    name: str

    def save_customer(self, user_id: UUID, customer: Customer) -> None: ...

    def delete_customer(self, user_id: UUID, customer_id: UUID) -> None: ...

    def load_customers(self, user_id: UUID) -> list[Customer]: ...

    def clear(self, user_id: UUID) -> None: ...


class LocalSnapshotStore:
    """
    Whole-ledger JSON file per user.

    File layout:
        {"version": 1, "created_at": ..., "updated_at": ...,
         "customers": [<customer document>, ...]}

    Writes go to a temp file in the same directory and are moved into place,
    so a crash mid-write leaves the previous snapshot intact.
    """

    name = "local"

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, user_id: UUID) -> Path:
        return self.directory / f"{user_id}.json"

    def _read(self, user_id: UUID) -> dict | None:
        path = self._path(user_id)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid snapshot file '{path}': {e}")

    def _write(self, user_id: UUID, document: dict) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh)
            os.replace(tmp_name, self._path(user_id))
        except OSError as e:
            raise SyncError(f"Local snapshot write failed for user {user_id}: {e}")

    def _update(self, user_id: UUID, mutate) -> None:
        with self._lock:
            now = now_utc().isoformat()
            document = self._read(user_id) or {
                "version": SNAPSHOT_VERSION,
                "created_at": now,
                "customers": [],
            }
            document["customers"] = mutate(document.get("customers", []))
            document["updated_at"] = now
            self._write(user_id, document)

    def save_customer(self, user_id: UUID, customer: Customer) -> None:
        """Insert or replace one customer document, keeping list order."""
        payload = customer.model_dump(mode="json")

        def upsert(customers: list[dict]) -> list[dict]:
            replaced = False
            result = []
            for doc in customers:
                if doc.get("id") == payload["id"]:
                    result.append(payload)
                    replaced = True
                else:
                    result.append(doc)
            if not replaced:
                result.append(payload)
            return result

        self._update(user_id, upsert)

    def delete_customer(self, user_id: UUID, customer_id: UUID) -> None:
        target = str(customer_id)
        self._update(user_id, lambda customers: [c for c in customers if c.get("id") != target])

    def load_customers(self, user_id: UUID) -> list[Customer]:
        """
        Read every customer for a user. Empty list if no snapshot exists.

        Raises:
            ValueError: If the snapshot file is corrupt
        """
        with self._lock:
            document = self._read(user_id)
        if document is None:
            return []

        try:
            return [Customer.model_validate(doc) for doc in document.get("customers", [])]
        except ValidationError as e:
            raise ValueError(f"Invalid customer document in snapshot for user {user_id}: {e}")

    def clear(self, user_id: UUID) -> None:
        with self._lock:
            path = self._path(user_id)
            if path.exists():
                path.unlink()


class RemoteSnapshotStore:
    """
    Customer documents in Valkey.

    Keys:
        {prefix}:{user_id}:customer:{customer_id}  JSON customer document
        {prefix}:{user_id}:customers               set of customer ids
    """

    name = "remote"

    def __init__(self, valkey: ValkeyClient, key_prefix: str = "trackdeni"):
        self._valkey = valkey
        self._prefix = key_prefix

    def _customer_key(self, user_id: UUID, customer_id: UUID | str) -> str:
        return f"{self._prefix}:{user_id}:customer:{customer_id}"

    def _index_key(self, user_id: UUID) -> str:
        return f"{self._prefix}:{user_id}:customers"

    def save_customer(self, user_id: UUID, customer: Customer) -> None:
        try:
            self._valkey.set_json(
                self._customer_key(user_id, customer.id),
                customer.model_dump(mode="json"),
            )
            self._valkey.add_to_set(self._index_key(user_id), str(customer.id))
        except redis.RedisError as e:
            raise SyncError(f"Remote save failed for customer {customer.id}: {e}")

    def delete_customer(self, user_id: UUID, customer_id: UUID) -> None:
        try:
            self._valkey.delete(self._customer_key(user_id, customer_id))
            self._valkey.remove_from_set(self._index_key(user_id), str(customer_id))
        except redis.RedisError as e:
            raise SyncError(f"Remote delete failed for customer {customer_id}: {e}")

    def load_customers(self, user_id: UUID) -> list[Customer]:
        """
        Read every indexed customer document, oldest first.

        Index entries whose document has gone missing are skipped.

        Raises:
            SyncError: If Valkey cannot be read
        """
        customers = []
        try:
            for customer_id in self._valkey.set_members(self._index_key(user_id)):
                document = self._valkey.get_json(self._customer_key(user_id, customer_id))
                if document is None:
                    logger.warning("Remote index lists missing customer %s", customer_id)
                    continue
                customers.append(Customer.model_validate(document))
        except redis.RedisError as e:
            raise SyncError(f"Remote load failed for user {user_id}: {e}")

        return sorted(customers, key=lambda c: c.created_at)

    def clear(self, user_id: UUID) -> None:
        try:
            ids = self._valkey.set_members(self._index_key(user_id))
            keys = [self._customer_key(user_id, cid) for cid in ids]
            self._valkey.delete(*keys, self._index_key(user_id))
        except redis.RedisError as e:
            raise SyncError(f"Remote clear failed for user {user_id}: {e}")
