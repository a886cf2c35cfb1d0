"""Typed exceptions for ledger failures."""


class LedgerError(Exception):
    """Base class for ledger errors."""


class TierLimitError(LedgerError):
    """Free tier customer limit reached. Upgrading lifts the limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Free tier limit of {limit} customers reached. Upgrade to Pro to add more customers."
        )


class SyncError(LedgerError):
    """
    A snapshot store rejected a write.

    Raised by stores and caught by the outbox; never reaches ledger callers.
    """


class SecretsError(LedgerError):
    """Ledger secrets could not be read from Vault."""
