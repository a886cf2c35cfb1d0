"""
Audit trail for all ledger changes.

Every mutation to every entity is logged here. The audit log is:
- Append-only (entries never modified or deleted)
- User-attributed (who made the change)
- Detailed (captures old and new values)

The in-memory trail keeps the newest max_entries records for history
queries. Every entry is also emitted on the "core.audit" logger, which is the
durable record: older entries leave memory but stay in the log.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class AuditEntry:
    """One immutable audit record."""

    user_id: UUID | None
    entity_type: str
    entity_id: UUID
    action: AuditAction
    changes: dict[str, Any]
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=now_utc)


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    all_keys = set(old.keys()) | set(new.keys())
    for key in all_keys:
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Audit trail for ledger entity changes.

    Always use model_dump(mode="json") when passing Pydantic models so
    UUIDs, Decimals and datetimes are recorded as JSON-compatible strings.

    Usage:
        audit = AuditLogger(user_id)

        audit.log_change(
            entity_type="debt",
            entity_id=debt.id,
            action=AuditAction.UPDATE,
            changes=compute_changes(
                old.model_dump(mode="json"),
                new.model_dump(mode="json"),
            ),
        )

        history = audit.get_entity_history("debt", debt.id)
    """

    def __init__(self, user_id: UUID | None = None, max_entries: int = 10_000):
        self.user_id = user_id
        self._entries: deque[AuditEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        user_id: UUID | None = None
    ) -> AuditEntry:
        """
        Log an entity change.

        Args:
            entity_type: Type of entity ("customer", "debt")
            entity_id: ID of the entity
            action: The action performed (CREATE, UPDATE, DELETE)
            changes: The changes made (format depends on action)
            user_id: User who made change (defaults to the ledger owner)

        Changes format by action:
        - CREATE: {"created": {full entity data}}
        - UPDATE: {"field": {"old": old_val, "new": new_val}, ...}
        - DELETE: {"deleted": {full entity data at deletion}}
        """
        entry = AuditEntry(
            user_id=user_id or self.user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            changes=changes,
        )

        with self._lock:
            self._entries.append(entry)

        logger.info(
            "%s %s %s (user=%s)",
            action.value,
            entity_type,
            entity_id,
            entry.user_id,
        )
        return entry

    def get_entity_history(self, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        """
        Get full audit history for an entity.

        Returns:
            List of audit entries, newest first.
        """
        with self._lock:
            matching = [
                e for e in self._entries
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        return list(reversed(matching))

    def get_user_activity(self, user_id: UUID | None = None, limit: int = 100) -> list[AuditEntry]:
        """
        Get recent activity by user.

        Args:
            user_id: User to get activity for (defaults to the ledger owner)
            limit: Maximum entries to return

        Returns:
            List of audit entries, newest first.
        """
        user_id = user_id or self.user_id
        with self._lock:
            matching = [e for e in self._entries if e.user_id == user_id]
        return list(reversed(matching))[:limit]
