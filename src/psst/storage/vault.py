"""
HashiCorp Vault storage backend.

Secrets live in the KV (v1) engine under one drop per entity:

    secret/psst/<entity>/<name>  ->  {"secret": "<content>"}

Talks to Vault's HTTP API directly with requests, authenticated by
the ``X-Vault-Token`` header. VAULT_ADDR and VAULT_TOKEN follow the
same conventions as the vault CLI.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional

import requests

from ..errors import SecretNotFoundError, StorageError
from .base import StorageBackend
from .policies import generate_policies_and_roles

logger = logging.getLogger("psst.storage.vault")

KEY_PREFIX = "secret/psst"
SECRET_FIELD = "secret"
DEFAULT_ADDR = "https://127.0.0.1:8200"
DEFAULT_TIMEOUT = 10.0


class VaultStore(StorageBackend):
    """Secret drops in a Vault KV engine.

    Args:
        addr: Vault address. Defaults to VAULT_ADDR.
        token: Vault token. Defaults to VAULT_TOKEN.
        timeout: Seconds allowed per request.
        session: Pre-built session. Tests inject a mock here.
    """

    def __init__(
        self,
        addr: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.addr = (addr or os.environ.get("VAULT_ADDR") or DEFAULT_ADDR).rstrip("/")
        self.timeout = timeout

        if session is None:
            session = requests.Session()
            vault_token = token or os.environ.get("VAULT_TOKEN", "")
            if vault_token:
                session.headers["X-Vault-Token"] = vault_token
        self._session = session

    @property
    def name(self) -> str:
        return "vault"

    def _request(
        self, method: str, path: str, data: Optional[dict] = None,
    ) -> requests.Response:
        url = f"{self.addr}/v1/{path.lstrip('/')}"
        try:
            return self._session.request(method, url, json=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise StorageError(f"Vault {method} {path} failed: {exc}") from exc

    @staticmethod
    def _check(resp: requests.Response, method: str, path: str) -> None:
        if resp.status_code >= 400:
            raise StorageError(
                f"Vault {method} {path}: {resp.status_code} {resp.text[:200]}"
            )

    def _entity_prefix(self, entity: str) -> str:
        return f"{KEY_PREFIX}/{entity}"

    def secret_path(self, entity: str, name: str) -> str:
        return f"{self._entity_prefix(entity)}/{name}"

    def get(self, path: str) -> str:
        resp = self._request("GET", path)
        if resp.status_code == 404:
            raise SecretNotFoundError(f"no secret found at {path}")
        self._check(resp, "GET", path)

        data: Any = (resp.json() or {}).get("data") or {}
        value = data.get(SECRET_FIELD)
        if not isinstance(value, str):
            raise StorageError(f"improperly formatted secret at {path}")
        return value

    def write(self, content: str, name: str, targets: Iterable[str]) -> None:
        for target in targets:
            path = self.secret_path(target, name)
            resp = self._request("POST", path, {SECRET_FIELD: content})
            if resp.status_code >= 400:
                raise StorageError(
                    f"unable to add secret for target {target}: "
                    f"{resp.status_code} {resp.text[:200]}"
                )
            logger.info("Secret %s dropped for %s", name, target)

    def list(self, entity: str) -> list[str]:
        path = self._entity_prefix(entity)
        resp = self._request("LIST", path)
        if resp.status_code == 404:
            return []
        self._check(resp, "LIST", path)

        data = (resp.json() or {}).get("data") or {}
        return [str(k) for k in data.get("keys") or []]

    def delete(self, path: str) -> None:
        resp = self._request("DELETE", path)
        self._check(resp, "DELETE", path)
        logger.info("Deleted secret %s", path)

    def generate_policies_and_roles(
        self,
        directory_backend: str,
        role_dir: Path,
        policy_dir: Path,
        default_team: str,
        entities: Iterable[str],
    ) -> None:
        generate_policies_and_roles(
            directory_backend, KEY_PREFIX, role_dir, policy_dir, default_team, entities,
        )
