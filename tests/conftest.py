"""Shared test fixtures for psst."""

from __future__ import annotations

import random
import threading
import time
from collections import Counter
from pathlib import Path
from typing import Iterable, Optional

import pytest

from psst.directory.github import TeamRef
from psst.errors import AuthError, TransportError
from psst.models import Member


class FakeResolver:
    """In-memory stand-in for GitHubResolver.

    Args:
        org: Organization name.
        whoami: Authenticated login, or None to fail auth.
        members: Org member logins, in listing order.
        names: Display names by login.
        teams: Team rosters by team name, in listing order.
        memberships: Team names returned for the authenticated caller.
        fail_on: Logins or team names whose lookup raises TransportError.
        jitter: Max random delay per lookup, to shuffle worker scheduling.
    """

    def __init__(
        self,
        org: str = "acme",
        whoami: Optional[str] = "test1",
        members: Iterable[str] = ("test2", "test1"),
        names: Optional[dict] = None,
        teams: Optional[dict] = None,
        memberships: Iterable[str] = ("team1",),
        fail_on: Iterable[str] = (),
        jitter: float = 0.0,
    ):
        self.org = org
        self._whoami = whoami
        self._members = list(members)
        self._names = names if names is not None else {"test1": "Test 1"}
        self._teams = teams if teams is not None else {
            "team2": [],
            "team1": ["test1", "test2"],
        }
        self._memberships = list(memberships)
        self._fail_on = set(fail_on)
        self._jitter = jitter
        self._lock = threading.Lock()
        self.calls: Counter = Counter()
        self.membership_logins: list[str] = []

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    def _pause(self) -> None:
        if self._jitter:
            time.sleep(random.random() * self._jitter)

    def whoami(self) -> str:
        self._count("whoami")
        if self._whoami is None:
            raise AuthError("unable to get authenticated user's login: bad token")
        return self._whoami

    def get_user(self, login: str) -> Member:
        self._count("get_user")
        self._pause()
        if login in self._fail_on:
            raise TransportError(f"GET /users/{login}: 502 bad gateway", status=502)
        return Member(login=login, name=self._names.get(login, ""))

    def list_org_members(self):
        self._count("list_org_members")
        yield from self._members

    def list_teams(self):
        self._count("list_teams")
        for i, name in enumerate(self._teams):
            yield TeamRef(id=i + 1, name=name, slug=name.lower())

    def list_team_members(self, slug: str) -> list[str]:
        self._count("list_team_members")
        self._pause()
        name = next(n for n in self._teams if n.lower() == slug)
        if name in self._fail_on:
            raise TransportError(f"GET /orgs/{self.org}/teams/{slug}/members: timed out")
        return list(self._teams[name])

    def list_user_team_memberships(self, login: str) -> list[str]:
        self._count("memberships")
        with self._lock:
            self.membership_logins.append(login)
        return list(self._memberships)


@pytest.fixture
def tmp_psst_home(tmp_path: Path) -> Path:
    """Provide a temporary psst home directory for testing."""
    home = tmp_path / ".psst"
    home.mkdir()
    return home


@pytest.fixture
def cache_dir(tmp_psst_home: Path) -> Path:
    return tmp_psst_home / "cache"


@pytest.fixture
def resolver() -> FakeResolver:
    """Two members and two teams; the caller is test1."""
    return FakeResolver()


@pytest.fixture
def make_resolver():
    """Factory for FakeResolver with custom directory contents."""
    return FakeResolver
