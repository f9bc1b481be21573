"""
Secret storage — drops for members and teams.

Backends: Vault (KV engine over HTTP).
"""

from __future__ import annotations

from ..config import PsstConfig
from ..errors import ConfigError
from .base import StorageBackend
from .vault import VaultStore

__all__ = ["StorageBackend", "VaultStore", "create_backend"]


def create_backend(config: PsstConfig) -> StorageBackend:
    """Instantiate the configured storage backend.

    Raises:
        ConfigError: If the backend name is unknown.
    """
    if config.storage_backend == "vault":
        return VaultStore(addr=config.vault_addr, token=config.vault_token())
    raise ConfigError(f"unknown storage backend '{config.storage_backend}'")
