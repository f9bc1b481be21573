"""
Tests for the Directory facade -- cache decisions and failure policy.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from psst.config import PsstConfig
from psst.directory import (
    CacheKey,
    CacheStore,
    Directory,
    DirectorySnapshot,
    FetchEngine,
)
from psst.errors import AuthError, CacheIOError, ConfigError, DirectoryError
from psst.models import Member


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(cache_dir: Path, clock: FakeClock) -> CacheStore:
    return CacheStore(cache_dir, ttl=timedelta(minutes=60), clock=clock)


def _directory(resolver, store, update_cache=False) -> Directory:
    return Directory(resolver, store, FetchEngine(workers=3), update_cache=update_cache)


class TestFetchAndCache:
    def test_cold_cache_fetches_and_saves(self, resolver, store):
        d = _directory(resolver, store)

        assert not d.from_cache
        assert d.cache_error is None
        assert resolver.calls["get_user"] == 2
        for key in CacheKey:
            assert not store.is_stale(key)

    def test_warm_cache_skips_remote(self, make_resolver, resolver, store):
        """A fresh cache is served without touching the directory."""
        _directory(resolver, store)

        second = make_resolver()
        d = _directory(second, store)

        assert d.from_cache
        assert second.calls["get_user"] == 0
        assert second.calls["list_teams"] == 0
        assert d.snapshot == _directory(resolver, store).snapshot

    def test_cache_roundtrip_is_exact(self, resolver, store, make_resolver):
        fetched = _directory(resolver, store).snapshot
        loaded = _directory(make_resolver(), store).snapshot
        assert loaded == fetched
        assert loaded.active_member_teams == ("team1",)

    def test_stale_cache_refetches(self, resolver, store, clock, make_resolver):
        _directory(resolver, store)
        clock.now += 61 * 60

        second = make_resolver(members=["test1", "test2", "test3"])
        d = _directory(second, store)

        assert not d.from_cache
        assert d.is_member("test3") == "test3"

    def test_one_stale_record_refetches_everything(self, resolver, store, clock, make_resolver):
        _directory(resolver, store)
        clock.now += 61 * 60
        store.save(CacheKey.MEMBERS, store.load(CacheKey.MEMBERS))
        store.save(CacheKey.TEAMS, store.load(CacheKey.TEAMS))

        second = make_resolver()
        _directory(second, store)
        assert second.calls["get_user"] == 2

    def test_update_cache_forces_fetch(self, resolver, store, make_resolver):
        _directory(resolver, store)

        second = make_resolver()
        d = _directory(second, store, update_cache=True)

        assert not d.from_cache
        assert second.calls["get_user"] == 2

    def test_corrupt_cache_refetches(self, resolver, store, make_resolver):
        """An unparseable record is treated as stale, not served or fatal."""
        _directory(resolver, store)
        store.save(CacheKey.TEAMS, b"{not json")

        second = make_resolver()
        d = _directory(second, store)

        assert not d.from_cache
        assert d.is_team("team1") == "team1"
        assert store.load(CacheKey.TEAMS) != b"{not json"


class TestFailurePolicy:
    def test_fetch_failure_is_fatal_and_uncached(self, make_resolver, store):
        """A failed lookup fails construction and caches nothing."""
        resolver = make_resolver(fail_on=["test2"])

        with pytest.raises(DirectoryError) as exc_info:
            _directory(resolver, store)

        assert "unable to get members or teams" in str(exc_info.value)
        for key in CacheKey:
            assert store.is_stale(key)

    def test_failed_refetch_does_not_touch_old_cache(self, resolver, store, clock, make_resolver):
        _directory(resolver, store)
        before = store.load(CacheKey.MEMBERS)
        clock.now += 61 * 60

        with pytest.raises(DirectoryError):
            _directory(make_resolver(fail_on=["team1"]), store)
        assert store.load(CacheKey.MEMBERS) == before

    def test_auth_failure_propagates(self, make_resolver, store):
        with pytest.raises(AuthError):
            _directory(make_resolver(whoami=None), store)

    def test_cache_write_failure_still_serves(self, resolver, tmp_path):
        """Fetched data is served even when it can't be cached."""
        blocker = tmp_path / "blocker"
        blocker.write_text("in the way")
        store = CacheStore(blocker / "cache")

        d = _directory(resolver, store)

        assert isinstance(d.cache_error, CacheIOError)
        assert d.is_member("test2") == "test2"


class TestLookups:
    @pytest.fixture
    def directory(self, resolver, store) -> Directory:
        return _directory(resolver, store)

    def test_get_matches(self, directory: Directory):
        matches = directory.get_matches("*")
        assert len(matches.members) == 2 and len(matches.teams) == 2
        assert directory.get_matches("Test 1").members == [Member(login="test1", name="Test 1")]

    def test_is_member(self, directory: Directory):
        assert directory.is_member("TEST1") == "test1"
        assert directory.is_member("missing") is None

    def test_is_team(self, directory: Directory):
        assert directory.is_team("TEAM2") == "team2"

    def test_team_members(self, directory: Directory):
        assert directory.team_members("team1") == ["test1", "test2"]
        assert directory.team_members("nope") == []

    def test_active_member_teams(self, directory: Directory):
        assert directory.active_member_teams() == ["team1"]

    def test_whoami(self, directory: Directory):
        assert directory.whoami() == "test1"

    def test_members_and_teams(self, directory: Directory):
        assert [m.login for m in directory.members()] == ["test1", "test2"]
        assert [t.name for t in directory.teams()] == ["team1", "team2"]


class TestFromConfig:
    def test_unknown_backend(self, tmp_psst_home):
        config = PsstConfig(home=tmp_psst_home, org="acme", directory_backend="ldap")
        with pytest.raises(ConfigError, match="unknown directory backend"):
            Directory.from_config(config)

    def test_missing_org(self, tmp_psst_home):
        with pytest.raises(ConfigError, match="no organization"):
            Directory.from_config(PsstConfig(home=tmp_psst_home))

    def test_missing_token(self, tmp_psst_home, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        config = PsstConfig(home=tmp_psst_home, org="acme")
        with pytest.raises(AuthError, match="GITHUB_TOKEN not set"):
            Directory.from_config(config)

    def test_cache_scoped_by_org(self, resolver, tmp_psst_home, monkeypatch):
        """Each organization reads and writes its own cache directory."""
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
        _directory(resolver, CacheStore(tmp_psst_home / "cache" / "acme"))

        d = Directory.from_config(PsstConfig(home=tmp_psst_home, org="ACME"))

        assert d.cache.cache_dir == tmp_psst_home / "cache" / "acme"
        assert d.from_cache
        assert [m.login for m in d.members()] == ["test1", "test2"]
        assert d.snapshot.organization == "ACME"

    def test_other_org_does_not_see_cache(self, resolver, tmp_psst_home, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
        _directory(resolver, CacheStore(tmp_psst_home / "cache" / "acme"))

        def empty(self):
            return DirectorySnapshot.build(self.resolver.org, [], [], [])

        monkeypatch.setattr(Directory, "_fetch", empty)
        d = Directory.from_config(PsstConfig(home=tmp_psst_home, org="other"))

        assert not d.from_cache
        assert d.members() == []
        assert not d.cache.is_stale(CacheKey.MEMBERS)
        assert d.cache.cache_dir == tmp_psst_home / "cache" / "other"
