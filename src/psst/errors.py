"""
Error types shared across the directory, storage, and CLI layers.

Lookups that simply find nothing are not errors: the directory
facade returns None or an empty list for those.
"""

from __future__ import annotations

from typing import Optional


class PsstError(Exception):
    """Base class for every error psst raises on purpose."""


class ConfigError(PsstError):
    """Configuration is missing or names something we can't use."""


class TransportError(PsstError):
    """The directory service could not be reached or refused a request.

    Timeouts are transport errors too.

    Attributes:
        status: HTTP status code, or None when no response arrived.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AuthError(PsstError):
    """The authenticated identity could not be determined."""


class DirectoryError(PsstError):
    """A directory snapshot could not be built.

    The first failure that aborted the fetch is chained as __cause__.
    """


class CacheIOError(PsstError):
    """A cache record could not be read, parsed, or written."""


class CacheMissError(CacheIOError):
    """The requested cache record does not exist."""


class StorageError(PsstError):
    """The secrets backend failed or returned something unexpected."""


class SecretNotFoundError(StorageError):
    """No secret exists at the requested path."""
