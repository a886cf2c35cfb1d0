"""Ledger configuration."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

_ENV_PREFIX = "TRACKDENI_"


class LedgerConfig(BaseModel):
    """
    Ledger configuration.

    Durations are in days, the unit debts are reasoned about in.
    """

    # Free tier
    free_tier_customer_limit: int = Field(
        default=5,
        description="Maximum customers a free tier user may keep",
        ge=1,
        le=1000,
    )

    # Allocation
    credit_validity_days: int = Field(
        default=365,
        description="Nominal due date offset for store credit entries",
        ge=1,
    )
    due_soon_days: int = Field(
        default=3,
        description="Debts due within this many days are flagged as due soon",
        ge=0,
        le=60,
    )

    # Audit
    audit_max_entries: int = Field(
        default=10_000,
        description="Audit entries kept in memory for history queries",
        ge=100,
    )

    # Sync
    outbox_max_attempts: int = Field(
        default=3,
        description="Delivery attempts per sync task before dead-lettering",
        ge=1,
        le=20,
    )
    outbox_retry_delay_seconds: float = Field(
        default=1.0,
        description="Pause before re-queueing a failed sync task",
        ge=0,
    )
    local_snapshot_dir: Path = Field(
        default=Path(".trackdeni"),
        description="Directory holding local per-user ledger snapshots",
    )
    remote_key_prefix: str = Field(
        default="trackdeni",
        description="Key prefix for documents in the remote store",
        min_length=1,
    )
    valkey_url: str | None = Field(
        default=None,
        description="Remote store URL. Read from Vault when unset.",
    )
    vault_secret_prefix: str = Field(
        default="trackdeni",
        description="Vault KV v2 path prefix holding ledger secrets",
        min_length=1,
    )


def load_config() -> LedgerConfig:
    """
    Build config from TRACKDENI_* environment variables.

    Unset variables fall back to field defaults; invalid values raise
    pydantic.ValidationError.
    """
    values = {}
    for name in LedgerConfig.model_fields:
        raw = os.getenv(f"{_ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = raw
    return LedgerConfig(**values)
