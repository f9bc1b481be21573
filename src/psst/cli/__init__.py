"""
psst CLI — drop secrets for members and teams of your org.

This package organizes the CLI into modular command groups.
The main Click group is defined here and all subcommands are
registered via register functions.

Entry point: psst.cli:main
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from .. import PSST_HOME, __version__
from ..config import load_config
from ._common import PsstContext


@click.group()
@click.version_option(version=__version__, prog_name="psst")
@click.option("--home", default=PSST_HOME, type=click.Path(), help="psst home directory.")
@click.option("--org", default=None, help="Organization for the directory.")
@click.option(
    "--directory-backend", default=None,
    help="Directory used to find members and teams (e.g. github).",
)
@click.option(
    "--storage-backend", default=None,
    help="Storage backend for secrets (e.g. vault).",
)
@click.option("--refresh", is_flag=True, help="Refetch the directory even if cached.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr.")
@click.pass_context
def main(
    ctx: click.Context,
    home: str,
    org: Optional[str],
    directory_backend: Optional[str],
    storage_backend: Optional[str],
    refresh: bool,
    verbose: bool,
):
    """psst — securely share secrets inside your organization.

    Members and teams come from GitHub, secrets live in Vault.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    if ctx.obj is not None:
        return

    config = load_config(Path(home))
    if org:
        config.org = org
    if directory_backend:
        config.directory_backend = directory_backend
    if storage_backend:
        config.storage_backend = storage_backend

    ctx.obj = PsstContext(config, update_cache=refresh)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .directory_cmd import register_directory_commands
from .secrets import register_secret_commands
from .generate import register_generate_commands

register_directory_commands(main)
register_secret_commands(main)
register_generate_commands(main)
