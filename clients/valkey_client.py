"""
Valkey (Redis-compatible) client for the remote ledger document store.

Simple wrapper around redis-py. Connection URL from config or Vault.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Redis-compatible client for Valkey.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set_json("trackdeni:user:customer:id", {"name": "Amina"})
        doc = client.get_json("trackdeni:user:customer:id")  # None if missing
    """

    def __init__(self, url: str):
        """
        Initialize Valkey connection.

        Args:
            url: Redis-compatible connection URL (e.g., redis://localhost:6379/0)

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        """
        Health check.

        Returns True if Valkey responds.
        Raises redis.ConnectionError if unreachable.
        """
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        """
        Get value by key.

        Returns None if key doesn't exist (not an error).
        Raises on connection failure.
        """
        return self._client.get(key)

    def set(self, key: str, value: str) -> None:
        """Set key to value."""
        self._client.set(key, value)

    def delete(self, *keys: str) -> bool:
        """
        Delete keys.

        Returns True if at least one key existed and was deleted.
        """
        if not keys:
            return False
        return self._client.delete(*keys) > 0

    def exists(self, key: str) -> bool:
        """Check if key exists."""
        return self._client.exists(key) > 0

    def set_json(self, key: str, value: dict | list) -> None:
        """
        Set key to JSON-serialized value.

        Args:
            key: Key to set
            value: Dict or list to serialize
        """
        self.set(key, json.dumps(value))

    def get_json(self, key: str) -> dict | list | None:
        """
        Get and deserialize JSON value.

        Returns None if key doesn't exist.
        Raises ValueError if value is not valid JSON.
        """
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def add_to_set(self, key: str, *members: str) -> int:
        """Add members to a set. Returns the number newly added."""
        return self._client.sadd(key, *members)

    def remove_from_set(self, key: str, *members: str) -> int:
        """Remove members from a set. Returns the number removed."""
        return self._client.srem(key, *members)

    def set_members(self, key: str) -> "set[str]":
        """All members of a set (empty if the key doesn't exist)."""
        return set(self._client.smembers(key))

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
