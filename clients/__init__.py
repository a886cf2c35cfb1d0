# Infrastructure clients
from clients.vault_client import VaultClient, get_valkey_url
from clients.valkey_client import ValkeyClient
