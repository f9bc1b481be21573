"""
Vault policy and role generation.

Every member and team gets a personal drop under the secret prefix.
Everyone may write into anyone's drop; only the owner may read,
list, or delete what's in theirs.

    <policy_dir>/psst.hcl              write-anywhere policy
    <policy_dir>/psst-<entity>.hcl     owner policy per entity
    <role_dir>/<entity>.json           {"value": "role1,role2"}

Role files may already hold roles managed elsewhere, so the psst
role is appended, never overwritten.
"""

from __future__ import annotations

import logging
from pathlib import Path
from string import Template
from typing import Iterable

from pydantic import BaseModel

from ..errors import ConfigError, StorageError
from .base import FILE_PREFIX

logger = logging.getLogger("psst.storage.policies")

POLICY_PERMS = 0o750


class PolicyTemplates(BaseModel):
    """HCL templates for one directory backend. ``$path`` is substituted."""

    general: str
    personal: str


POLICIES: dict[str, PolicyTemplates] = {
    "github": PolicyTemplates(
        general=(
            "# Allows all users to write secrets to other users\n"
            'path "$path/*" {\n'
            '\tcapabilities = ["create", "update"]\n'
            "}\n"
        ),
        personal=(
            "# Allows a user to read secrets from personal drop keyspace\n"
            'path "$path/*" {\n'
            '\tcapabilities = ["read", "list", "delete"]\n'
            "}\n"
        ),
    ),
}


class RolePolicy(BaseModel):
    """Contents of a role file: comma-separated policy names."""

    value: str = ""

    @property
    def roles(self) -> list[str]:
        return [r for r in self.value.split(",") if r]


def render_policy(template: str, path: str) -> str:
    return Template(template).substitute(path=path)


def ensure_role(entity: str, role_name: str, role_dir: Path) -> bool:
    """Make sure ``entity``'s role file lists ``role_name``.

    Creates the file for entities that joined since the last run.

    Returns:
        bool: True if the file was written.

    Raises:
        StorageError: If an existing role file can't be read or parsed.
    """
    role_file = Path(role_dir) / f"{entity}.json"
    policy = RolePolicy()

    if role_file.exists():
        try:
            policy = RolePolicy.model_validate_json(role_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"unable to read role file {role_file}: {exc}") from exc

    roles = policy.roles
    if role_name in roles:
        return False

    roles.append(role_name)
    policy = RolePolicy(value=",".join(roles))
    try:
        role_file.parent.mkdir(parents=True, exist_ok=True)
        role_file.write_text(policy.model_dump_json(), encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"unable to write role file {role_file}: {exc}") from exc
    logger.debug("Added role %s to %s", role_name, role_file)
    return True


def generate_policies_and_roles(
    directory_backend: str,
    key_prefix: str,
    role_dir: Path,
    policy_dir: Path,
    default_team: str,
    entities: Iterable[str],
) -> int:
    """Write the general policy plus a policy and role per entity.

    Args:
        directory_backend: Which template set to use ("github").
        key_prefix: Secret path prefix, e.g. "secret/psst".
        role_dir: Role directory for these entities (…/users or …/teams).
        policy_dir: Directory receiving the .hcl files.
        default_team: Team holding every member; gets the general role.
        entities: Member logins or team names.

    Returns:
        int: Number of entity policies written.

    Raises:
        ConfigError: If the directory backend has no templates.
        StorageError: If a policy or role file can't be written.
    """
    templates = POLICIES.get(directory_backend)
    if templates is None:
        raise ConfigError(f"unknown directory backend {directory_backend}")

    role_dir = Path(role_dir)
    policy_dir = Path(policy_dir)

    _write_policy(
        policy_dir / f"{FILE_PREFIX}.hcl",
        render_policy(templates.general, key_prefix),
    )

    team_roles = role_dir
    if role_dir.name == "users":
        team_roles = role_dir.parent / "teams"
    ensure_role(default_team, FILE_PREFIX, team_roles)

    count = 0
    for entity in entities:
        role_name = f"{FILE_PREFIX}-{entity}"
        _write_policy(
            policy_dir / f"{role_name}.hcl",
            render_policy(templates.personal, f"{key_prefix}/{entity}"),
        )
        ensure_role(entity, role_name, role_dir)
        count += 1

    logger.info("Wrote %d policies to %s", count, policy_dir)
    return count


def _write_policy(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        path.chmod(POLICY_PERMS)
    except OSError as exc:
        raise StorageError(f"unable to write policy file {path}: {exc}") from exc
