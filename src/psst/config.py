"""
psst configuration — where things live and who to talk to.

Settings come from ``<home>/config.yaml`` (home defaults to ~/.psst),
then a few environment variables, then CLI flags. Nothing here is a
module-level mutable: every component gets its settings passed in.

Example config.yaml:

    org: my-org
    directory_backend: github
    storage_backend: vault
    vault_addr: https://vault.example.com:8200
    workers: 10
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

from . import PSST_HOME

logger = logging.getLogger("psst.config")

CONFIG_FILE = "config.yaml"


class PsstConfig(BaseModel):
    """Complete psst configuration.

    Attributes:
        home: psst home directory.
        org: Organization whose directory scopes every query.
        directory_backend: Identity source. Only "github" is supported.
        storage_backend: Secrets store. Only "vault" is supported.
        cache_dir: Root of the per-org directory caches.
        cache_ttl_minutes: Age after which a cached record is stale.
        workers: Concurrent lookups during a directory fetch.
        request_timeout: Seconds allowed for each directory call.
        github_api_url: GitHub REST endpoint (override for GHE).
        github_token_env: Env var holding the GitHub token.
        vault_addr: Vault server address.
        vault_token_env: Env var holding the Vault token.
        default_team: Team that contains every member of the org.
    """

    home: Path = Path(PSST_HOME)
    org: str = ""
    directory_backend: str = "github"
    storage_backend: str = "vault"
    cache_dir: Optional[Path] = None
    cache_ttl_minutes: float = 60.0
    workers: int = 10
    request_timeout: float = 2.0
    github_api_url: str = "https://api.github.com"
    github_token_env: str = "GITHUB_TOKEN"
    vault_addr: Optional[str] = None
    vault_token_env: str = "VAULT_TOKEN"
    default_team: str = "all"

    @property
    def resolved_cache_dir(self) -> Path:
        """Cache directory, defaulting to <home>/cache."""
        return (self.cache_dir or self.home / "cache").expanduser()

    def github_token(self) -> Optional[str]:
        """Read the GitHub token from the environment."""
        return os.environ.get(self.github_token_env) or None

    def vault_token(self) -> Optional[str]:
        """Read the Vault token from the environment."""
        return os.environ.get(self.vault_token_env) or None


def load_config(home: Optional[Path] = None) -> PsstConfig:
    """Load configuration from disk and the environment.

    A missing or broken config file is not fatal: it is logged and
    the defaults are used instead.

    Args:
        home: psst home directory. Defaults to PSST_HOME (~/.psst).

    Returns:
        PsstConfig: The merged configuration.
    """
    home_path = Path(home or PSST_HOME).expanduser()
    data: dict = {}

    config_file = home_path / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
        except (yaml.YAMLError, ValueError, OSError) as exc:
            logger.warning("Failed to load %s: %s", config_file, exc)
            data = {}

    data["home"] = home_path

    if os.environ.get("PSST_ORG"):
        data["org"] = os.environ["PSST_ORG"]
    if os.environ.get("PSST_CACHE_DIR"):
        data["cache_dir"] = os.environ["PSST_CACHE_DIR"]
    if os.environ.get("VAULT_ADDR"):
        data["vault_addr"] = os.environ["VAULT_ADDR"]

    try:
        return PsstConfig(**data)
    except ValueError as exc:
        logger.warning("Invalid psst config, using defaults: %s", exc)
        return PsstConfig(home=home_path)


def save_config(config: PsstConfig) -> Path:
    """Persist configuration to <home>/config.yaml.

    Args:
        config: Configuration to write.

    Returns:
        Path: The written config file.
    """
    home_path = config.home.expanduser()
    home_path.mkdir(parents=True, exist_ok=True)
    config_file = home_path / CONFIG_FILE
    data = config.model_dump(mode="json", exclude={"home"}, exclude_none=True)
    config_file.write_text(
        yaml.dump(data, default_flow_style=False), encoding="utf-8"
    )
    return config_file
