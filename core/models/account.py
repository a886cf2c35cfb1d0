"""Account tier model."""

from enum import Enum


class UserTier(str, Enum):
    """Subscription tier of the ledger owner."""

    FREE = "free"
    PRO = "pro"
