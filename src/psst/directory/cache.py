"""
Directory cache — three independently aged records on disk.

    <cache_dir>/members              sorted member list
    <cache_dir>/teams                sorted team list
    <cache_dir>/active-memberships   the caller's team names

A record's age is its file mtime. Writes go to a temp file in the
same directory and are renamed over the old record, so a crash
mid-write leaves the previous record readable.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..errors import CacheIOError, CacheMissError

logger = logging.getLogger("psst.directory.cache")

DEFAULT_TTL = timedelta(minutes=60)


class CacheKey(str, Enum):
    """Named records in the directory cache."""

    MEMBERS = "members"
    TEAMS = "teams"
    ACTIVE_MEMBERSHIPS = "active-memberships"


class CacheStore:
    """Timestamped byte records under a cache directory.

    Args:
        cache_dir: Directory holding the records. Created on first use.
        ttl: Records older than this are stale.
        clock: Returns the current time as epoch seconds.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir).expanduser()
        self.ttl = ttl
        self._clock = clock
        self._ready = False

    def path(self, key: CacheKey) -> Path:
        return self.cache_dir / CacheKey(key).value

    def _ensure_dir(self) -> None:
        if self._ready:
            return
        try:
            self.cache_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheIOError(
                f"unable to create cache directory {self.cache_dir}: {exc}"
            ) from exc
        self._ready = True

    def age(self, key: CacheKey) -> Optional[float]:
        """Seconds since the record was last written, or None if absent."""
        try:
            mtime = self.path(key).stat().st_mtime
        except OSError:
            return None
        return max(0.0, self._clock() - mtime)

    def is_stale(self, key: CacheKey) -> bool:
        """True if the record is absent or older than the TTL."""
        age = self.age(key)
        if age is None:
            return True
        return age > self.ttl.total_seconds()

    def load(self, key: CacheKey) -> bytes:
        """Read a record.

        Raises:
            CacheMissError: If the record does not exist.
            CacheIOError: If the record exists but can't be read.
        """
        path = self.path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise CacheMissError(f"no cached {CacheKey(key).value} at {path}") from exc
        except OSError as exc:
            raise CacheIOError(f"unable to read cache file {path}: {exc}") from exc

    def save(self, key: CacheKey, data: bytes) -> None:
        """Replace a record and reset its age to zero.

        Raises:
            CacheIOError: If the record can't be written.
        """
        self._ensure_dir()
        path = self.path(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.cache_dir, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise CacheIOError(f"unable to write cache file {path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

        # mtime is the age source; keep it consistent with the injected clock
        now = self._clock()
        try:
            os.utime(path, (now, now))
        except OSError as exc:
            raise CacheIOError(f"unable to timestamp cache file {path}: {exc}") from exc
        logger.debug("Cached %s (%d bytes)", path.name, len(data))

    def clear(self) -> None:
        """Remove every record so the next load refetches."""
        for key in CacheKey:
            try:
                self.path(key).unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise CacheIOError(f"unable to remove {self.path(key)}: {exc}") from exc
