"""
Concurrent fetch engine — fan-out lookups over a fixed worker pool.

Looking up every org member one by one takes most of a minute on a
large org. The engine spreads the per-identity calls over N worker
threads instead:

    producer (caller) --intake--> N workers --output--> collector

The producer walks the paginated listing and feeds the bounded
intake queue. Workers resolve items and push results to the bounded
output queue, which a single collector drains. The first failure
trips an error latch; workers keep draining intake without resolving
so the producer never blocks, and the fetch raises that first error
once everyone has stopped. There is no partial result.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from operator import attrgetter
from typing import Callable, Iterable, Optional, TypeVar

from ..errors import TransportError
from ..models import Member, Team
from .github import GitHubResolver, TeamRef
from .snapshot import DirectorySnapshot

logger = logging.getLogger("psst.directory.fetch")

DEFAULT_WORKERS = 10

T = TypeVar("T")
R = TypeVar("R")

_DONE = object()


class _ErrorLatch:
    """Holds the first error raised by any worker."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tripped = threading.Event()
        self.error: Optional[BaseException] = None

    def trip(self, exc: BaseException) -> None:
        with self._lock:
            if self.error is None:
                self.error = exc
                self._tripped.set()

    @property
    def tripped(self) -> bool:
        return self._tripped.is_set()


class FetchEngine:
    """Bounded worker pool for directory lookups.

    Args:
        workers: Number of concurrent worker threads.
        queue_size: Capacity of the intake and output queues.
            Defaults to twice the worker count.
    """

    def __init__(self, workers: int = DEFAULT_WORKERS, queue_size: Optional[int] = None):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers
        self.queue_size = queue_size or workers * 2

    def run(
        self,
        source: Iterable[T],
        resolve: Callable[[T], R],
        label: str = "items",
    ) -> list[R]:
        """Resolve every item of ``source`` concurrently.

        Results come back in arrival order, which depends on thread
        scheduling. Callers sort them.

        Args:
            source: Items to resolve. May be a lazy paginated listing;
                it is consumed on the calling thread.
            resolve: Called once per item on a worker thread.
            label: What the items are, for log messages.

        Returns:
            list: One result per item.

        Raises:
            Exception: The first error raised by ``resolve`` or by
                iterating ``source``.
        """
        intake: queue.Queue = queue.Queue(maxsize=self.queue_size)
        output: queue.Queue = queue.Queue(maxsize=self.queue_size)
        latch = _ErrorLatch()
        results: list[R] = []

        def collect() -> None:
            while True:
                result = output.get()
                if result is _DONE:
                    return
                results.append(result)

        def work() -> None:
            while True:
                item = intake.get()
                if item is _DONE:
                    return
                if latch.tripped:
                    continue
                try:
                    result = resolve(item)
                except Exception as exc:
                    latch.trip(exc)
                    continue
                output.put(result)

        collector = threading.Thread(target=collect, name="psst-collector", daemon=True)
        collector.start()
        pool = [
            threading.Thread(target=work, name=f"psst-worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for t in pool:
            t.start()

        produced = 0
        try:
            for item in source:
                if latch.tripped:
                    break
                intake.put(item)
                produced += 1
        except Exception as exc:
            latch.trip(exc)
        finally:
            for _ in pool:
                intake.put(_DONE)
            for t in pool:
                t.join()
            output.put(_DONE)
            collector.join()

        if latch.error is not None:
            logger.error("Fetching %s failed: %s", label, latch.error)
            raise latch.error

        logger.debug("Resolved %d of %d %s", len(results), produced, label)
        return results

    def fetch_members(
        self, resolver: GitHubResolver, active_login: str,
    ) -> tuple[list[Member], list[str]]:
        """Resolve every org member's display name.

        The caller's own team memberships are looked up by whichever
        worker happens to resolve the caller; nobody else's are.

        Args:
            resolver: Directory client.
            active_login: Login of the authenticated caller.

        Returns:
            tuple: (members sorted by login, caller's team names).
        """
        active = active_login.lower()

        def resolve(login: str) -> tuple[Member, Optional[list[str]]]:
            try:
                member = resolver.get_user(login)
                teams = None
                if login.lower() == active:
                    teams = resolver.list_user_team_memberships(login)
            except TransportError as exc:
                raise TransportError(
                    f"error looking up member {login}: {exc}", status=exc.status,
                ) from exc
            return member, teams

        results = self.run(resolver.list_org_members(), resolve, label="members")

        members = sorted((m for m, _ in results), key=attrgetter("login"))
        active_teams = next((teams for _, teams in results if teams is not None), [])
        return members, active_teams

    def fetch_teams(self, resolver: GitHubResolver) -> list[Team]:
        """Resolve the roster of every team in the org, sorted by name."""

        def resolve(ref: TeamRef) -> Team:
            try:
                logins = resolver.list_team_members(ref.slug)
            except TransportError as exc:
                raise TransportError(
                    f"error looking up members of team {ref.name}: {exc}",
                    status=exc.status,
                ) from exc
            return Team(name=ref.name, members=tuple(logins))

        teams = self.run(resolver.list_teams(), resolve, label="teams")
        return sorted(teams, key=attrgetter("name"))

    def fetch_snapshot(self, resolver: GitHubResolver) -> DirectorySnapshot:
        """Fetch members and teams side by side and build a snapshot.

        Raises:
            AuthError: If the caller's identity can't be determined.
            TransportError: The first lookup failure of either fetch.
        """
        active_login = resolver.whoami()
        logger.info("Fetching directory for %s as %s", resolver.org, active_login)

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="psst-fetch") as pool:
            members_job = pool.submit(self.fetch_members, resolver, active_login)
            teams_job = pool.submit(self.fetch_teams, resolver)
            members, active_teams = members_job.result()
            teams = teams_job.result()

        logger.info(
            "Fetched %d member(s) and %d team(s) from %s",
            len(members), len(teams), resolver.org,
        )
        return DirectorySnapshot.build(
            organization=resolver.org,
            members=members,
            teams=teams,
            active_member_teams=active_teams,
        )
