"""
Vault access for the ledger's remote store credentials.

The ledger reads one secret: the Valkey URL, stored as the `url` field of
the KV v2 secret `<prefix>/valkey`. Login is AppRole, configured from
VAULT_ADDR, VAULT_ROLE_ID, VAULT_SECRET_ID and the optional VAULT_NAMESPACE.
Every failure surfaces as SecretsError.
"""

import logging
import os

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized, VaultError

from core.exceptions import SecretsError

logger = logging.getLogger(__name__)

_REQUIRED_ENV = ("VAULT_ADDR", "VAULT_ROLE_ID", "VAULT_SECRET_ID")

# One authenticated client and one URL per secret prefix, for the process
_clients: dict[str, "VaultClient"] = {}
_valkey_urls: dict[str, str] = {}


class VaultClient:
    """
    AppRole-authenticated reader scoped to one secret prefix.

    Paths passed to read_field() are relative to the prefix, so a ledger
    configured for 'trackdeni' can only read under 'trackdeni/'.
    """

    def __init__(self, secret_prefix: str = "trackdeni"):
        missing = [name for name in _REQUIRED_ENV if not os.getenv(name)]
        if missing:
            raise SecretsError(f"Vault is not configured: {', '.join(missing)} not set")

        self.secret_prefix = secret_prefix.strip("/")
        self.vault_addr = os.environ["VAULT_ADDR"]
        self.client = hvac.Client(url=self.vault_addr, namespace=os.getenv("VAULT_NAMESPACE") or None)

        try:
            auth = self.client.auth.approle.login(
                role_id=os.environ["VAULT_ROLE_ID"],
                secret_id=os.environ["VAULT_SECRET_ID"],
            )
        except VaultError as e:
            raise SecretsError(f"Vault AppRole login failed: {e}") from e

        self.client.token = auth["auth"]["client_token"]
        if not self.client.is_authenticated():
            raise SecretsError("Vault rejected the AppRole token")

        logger.info("Vault client authenticated at %s for '%s/'", self.vault_addr, self.secret_prefix)

    def read_field(self, path: str, field: str) -> str:
        """
        Read one field of a KV v2 secret under the prefix.

        Raises:
            SecretsError: Secret missing, access denied, or field absent
        """
        full_path = f"{self.secret_prefix}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            raise SecretsError(f"Secret '{full_path}' not found in Vault") from e
        except (Unauthorized, Forbidden) as e:
            raise SecretsError(f"Access denied to secret '{full_path}'") from e

        data = response["data"]["data"]
        if field not in data:
            raise SecretsError(
                f"Secret '{full_path}' has no '{field}' field (has: {', '.join(sorted(data))})"
            )
        return data[field]


def get_valkey_url(secret_prefix: str = "trackdeni") -> str:
    """
    Valkey URL for the remote snapshot store.

    Read once per prefix and cached for the life of the process.

    Raises:
        SecretsError: Vault unconfigured, unreachable, or missing the secret
    """
    if secret_prefix not in _valkey_urls:
        client = _clients.get(secret_prefix)
        if client is None:
            client = _clients[secret_prefix] = VaultClient(secret_prefix)
        _valkey_urls[secret_prefix] = client.read_field("valkey", "url")
    return _valkey_urls[secret_prefix]


def reset() -> None:
    """Forget cached clients and URLs, e.g. after Vault env vars change."""
    _clients.clear()
    _valkey_urls.clear()
