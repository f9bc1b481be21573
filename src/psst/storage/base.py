"""
Storage backends — where dropped secrets actually live.

A secret is addressed by the entity it was dropped for (a member
login or a team name) and a secret name. Access control belongs to
the backend; psst only generates the policy files for it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

# Prefix of every psst-generated policy and role name
FILE_PREFIX = "psst"


class StorageBackend(ABC):
    """Abstract secrets store."""

    @abstractmethod
    def get(self, path: str) -> str:
        """Read the secret stored at ``path``.

        Raises:
            SecretNotFoundError: If nothing is stored there.
            StorageError: On backend failure.
        """

    @abstractmethod
    def write(self, content: str, name: str, targets: Iterable[str]) -> None:
        """Drop ``content`` as secret ``name`` for every target entity."""

    @abstractmethod
    def list(self, entity: str) -> list[str]:
        """Names of the secrets in an entity's drop."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the secret stored at ``path``."""

    @abstractmethod
    def secret_path(self, entity: str, name: str) -> str:
        """Backend path of secret ``name`` in ``entity``'s drop."""

    @abstractmethod
    def generate_policies_and_roles(
        self,
        directory_backend: str,
        role_dir: Path,
        policy_dir: Path,
        default_team: str,
        entities: Iterable[str],
    ) -> None:
        """Write access policies and role files for every entity."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""
