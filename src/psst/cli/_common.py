"""Shared utilities for all CLI command modules.

Provides the Rich consoles, the per-invocation context that builds
the directory and storage backend on first use, and the mapping
from psst errors to exit codes.
"""

from __future__ import annotations

import functools
import logging
import sys
from typing import Callable, Optional

import click
from rich.console import Console

from ..config import PsstConfig
from ..directory import Directory
from ..errors import (
    AuthError,
    ConfigError,
    DirectoryError,
    PsstError,
    SecretNotFoundError,
    StorageError,
    TransportError,
)
from ..storage import StorageBackend, create_backend

logger = logging.getLogger("psst.cli")

console = Console()
err_console = Console(stderr=True)

EXIT_ERROR = 1
EXIT_DIRECTORY = 2
EXIT_AUTH = 3
EXIT_STORAGE = 4
EXIT_CONFIG = 5


def exit_code_for(exc: PsstError) -> int:
    """Map an error to the process exit status.

    Directory outages, auth failures, storage failures, and bad
    configuration each get their own status so scripts can tell
    them apart. A missing secret is an ordinary not-found.
    """
    if isinstance(exc, AuthError):
        return EXIT_AUTH
    if isinstance(exc, (DirectoryError, TransportError)):
        return EXIT_DIRECTORY
    if isinstance(exc, SecretNotFoundError):
        return EXIT_ERROR
    if isinstance(exc, StorageError):
        return EXIT_STORAGE
    if isinstance(exc, ConfigError):
        return EXIT_CONFIG
    return EXIT_ERROR


def error_and_exit(message: str, code: int = EXIT_ERROR) -> None:
    err_console.print(f"[bold red]error:[/] {message}")
    sys.exit(code)


def handle_errors(func: Callable) -> Callable:
    """Turn psst errors raised by a command into a message and exit code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PsstError as exc:
            logger.debug("Command failed", exc_info=True)
            error_and_exit(str(exc), exit_code_for(exc))

    return wrapper


class PsstContext:
    """Per-invocation state shared by every command.

    The directory and storage backend are built on first access so
    commands only pay for what they use.

    Args:
        config: Effective configuration.
        update_cache: Force a directory refetch.
        directory: Pre-built directory (tests inject one).
        storage: Pre-built storage backend (tests inject one).
    """

    def __init__(
        self,
        config: PsstConfig,
        update_cache: bool = False,
        directory: Optional[Directory] = None,
        storage: Optional[StorageBackend] = None,
    ):
        self.config = config
        self.update_cache = update_cache
        self._directory = directory
        self._storage = storage

    @property
    def directory(self) -> Directory:
        if self._directory is None:
            with err_console.status("Loading directory..."):
                self._directory = Directory.from_config(
                    self.config, update_cache=self.update_cache
                )
            if self._directory.cache_error is not None:
                err_console.print(
                    "[yellow]warning:[/] directory fetched but not cached, "
                    f"the next run will fetch again: {self._directory.cache_error}"
                )
        return self._directory

    @property
    def storage(self) -> StorageBackend:
        if self._storage is None:
            self._storage = create_backend(self.config)
        return self._storage


pass_psst = click.make_pass_decorator(PsstContext)
