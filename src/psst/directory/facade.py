"""
Directory facade — the one place the rest of psst asks about people.

On construction it decides between the cache and a fresh fetch:

    all three records fresh  ->  load from cache
    any stale / unreadable   ->  fetch, then save all three
    update_cache=True        ->  fetch, then save all three

A failed fetch is fatal (DirectoryError). A failed cache write is
not: the fetched snapshot is served and the failure is kept on
``cache_error`` for the caller to report.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from ..config import PsstConfig
from ..errors import (
    AuthError,
    CacheIOError,
    ConfigError,
    DirectoryError,
    TransportError,
)
from ..models import Matches, Member, Team
from .cache import CacheKey, CacheStore
from .fetch import FetchEngine
from .github import GitHubResolver
from .snapshot import DirectorySnapshot

logger = logging.getLogger("psst.directory")

_MEMBERS = TypeAdapter(list[Member])
_TEAMS = TypeAdapter(list[Team])
_NAMES = TypeAdapter(list[str])


class Directory:
    """Cached, queryable view of an organization's members and teams.

    Args:
        resolver: Directory client for the organization.
        cache: Where snapshots are cached between runs.
        engine: Worker pool for fetches. Defaults to 10 workers.
        update_cache: Refetch even if the cache is fresh.

    Raises:
        DirectoryError: If a snapshot is needed and the fetch fails.
        AuthError: If the caller's identity can't be determined.
    """

    def __init__(
        self,
        resolver: GitHubResolver,
        cache: CacheStore,
        engine: Optional[FetchEngine] = None,
        update_cache: bool = False,
    ):
        self.resolver = resolver
        self.cache = cache
        self.engine = engine or FetchEngine()
        self.cache_error: Optional[CacheIOError] = None
        self.from_cache = False
        self._snapshot = self._load_or_fetch(update_cache)

    @classmethod
    def from_config(cls, config: PsstConfig, update_cache: bool = False) -> "Directory":
        """Build a directory from psst configuration.

        Raises:
            ConfigError: If the org or backend is unusable.
            AuthError: If no GitHub token is available.
        """
        if config.directory_backend != "github":
            raise ConfigError(
                f"unknown directory backend '{config.directory_backend}'"
            )
        if not config.org:
            raise ConfigError("no organization set (use --org or PSST_ORG)")

        token = config.github_token()
        if not token:
            raise AuthError(f"{config.github_token_env} not set")

        resolver = GitHubResolver(
            org=config.org,
            token=token,
            api_url=config.github_api_url,
            timeout=config.request_timeout,
        )
        # Cached records are per org
        cache = CacheStore(
            config.resolved_cache_dir / config.org.lower(),
            ttl=timedelta(minutes=config.cache_ttl_minutes),
        )
        return cls(resolver, cache, FetchEngine(config.workers), update_cache)

    # ------------------------------------------------------------------
    # Snapshot lifecycle
    # ------------------------------------------------------------------

    def _load_or_fetch(self, update_cache: bool) -> DirectorySnapshot:
        stale = [key.value for key in CacheKey if self.cache.is_stale(key)]
        if not update_cache and not stale:
            try:
                snapshot = self._load_cached()
                self.from_cache = True
                logger.debug("Directory loaded from cache %s", self.cache.cache_dir)
                return snapshot
            except CacheIOError as exc:
                logger.warning("Ignoring unusable directory cache: %s", exc)
        elif stale:
            logger.debug("Directory cache stale: %s", ", ".join(stale))

        snapshot = self._fetch()
        try:
            self._save(snapshot)
        except CacheIOError as exc:
            logger.warning("Directory fetched but not cached: %s", exc)
            self.cache_error = exc
        return snapshot

    def _fetch(self) -> DirectorySnapshot:
        try:
            return self.engine.fetch_snapshot(self.resolver)
        except AuthError:
            raise
        except TransportError as exc:
            raise DirectoryError(
                f"unable to get members or teams from {self.resolver.org}: {exc}"
            ) from exc

    def _load_cached(self) -> DirectorySnapshot:
        try:
            members = _MEMBERS.validate_json(self.cache.load(CacheKey.MEMBERS))
            teams = _TEAMS.validate_json(self.cache.load(CacheKey.TEAMS))
            active = _NAMES.validate_json(self.cache.load(CacheKey.ACTIVE_MEMBERSHIPS))
        except ValidationError as exc:
            raise CacheIOError(f"unable to parse cached directory: {exc}") from exc
        return DirectorySnapshot.build(self.resolver.org, members, teams, active)

    def _save(self, snapshot: DirectorySnapshot) -> None:
        self.cache.save(CacheKey.MEMBERS, _MEMBERS.dump_json(list(snapshot.members)))
        self.cache.save(CacheKey.TEAMS, _TEAMS.dump_json(list(snapshot.teams)))
        self.cache.save(
            CacheKey.ACTIVE_MEMBERSHIPS,
            _NAMES.dump_json(list(snapshot.active_member_teams)),
        )

    @property
    def snapshot(self) -> DirectorySnapshot:
        return self._snapshot

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_matches(self, query: Optional[str] = None) -> Matches:
        """Search members and teams; see DirectorySnapshot.get_matches."""
        return self._snapshot.get_matches(query)

    def is_member(self, login: str) -> Optional[str]:
        return self._snapshot.is_member(login)

    def is_team(self, name: str) -> Optional[str]:
        return self._snapshot.is_team(name)

    def team_members(self, name: str) -> list[str]:
        return self._snapshot.team_members(name)

    def active_member_teams(self) -> list[str]:
        """Teams the authenticated caller belongs to."""
        return list(self._snapshot.active_member_teams)

    def members(self) -> list[Member]:
        return list(self._snapshot.members)

    def teams(self) -> list[Team]:
        return list(self._snapshot.teams)

    def whoami(self) -> str:
        """Login of the authenticated caller.

        Raises:
            AuthError: If the directory can't tell who the caller is.
        """
        return self.resolver.whoami()
