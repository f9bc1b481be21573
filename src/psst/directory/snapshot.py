"""
Directory snapshot — the immutable picture of an org for one run.

Built once per process (fetched or loaded from cache), sorted, and
read-only afterwards. All lookups compare case-insensitively and
hand back the directory's original casing.
"""

from __future__ import annotations

from operator import attrgetter
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from ..models import Matches, Member, Team

MATCH_ALL = "*"


class DirectorySnapshot(BaseModel):
    """Members, teams, and the caller's own team memberships.

    Attributes:
        organization: Org the snapshot was taken from.
        members: Members sorted by login.
        teams: Teams sorted by name.
        active_member_teams: Teams the authenticated caller is on.
    """

    model_config = ConfigDict(frozen=True)

    organization: str
    members: tuple[Member, ...] = ()
    teams: tuple[Team, ...] = ()
    active_member_teams: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        organization: str,
        members: Iterable[Member],
        teams: Iterable[Team],
        active_member_teams: Iterable[str] = (),
    ) -> "DirectorySnapshot":
        """Create a snapshot, sorting members and teams by their keys."""
        return cls(
            organization=organization,
            members=tuple(sorted(members, key=attrgetter("login"))),
            teams=tuple(sorted(teams, key=attrgetter("name"))),
            active_member_teams=tuple(active_member_teams),
        )

    def get_matches(self, query: Optional[str] = None) -> Matches:
        """Members and teams whose keys contain ``query``.

        ``None``, ``""`` and ``"*"`` match everything. A member matches
        on login or display name, a team on its name.
        """
        if not query or query == MATCH_ALL:
            return Matches(members=list(self.members), teams=list(self.teams))

        needle = query.lower()
        return Matches(
            members=[
                m for m in self.members
                if needle in m.login.lower() or needle in m.name.lower()
            ],
            teams=[t for t in self.teams if needle in t.name.lower()],
        )

    def is_member(self, login: str) -> Optional[str]:
        """Canonical login for ``login``, or None if not in the org."""
        wanted = login.lower()
        for m in self.members:
            if m.login.lower() == wanted:
                return m.login
        return None

    def find_team(self, name: str) -> Optional[Team]:
        wanted = name.lower()
        for t in self.teams:
            if t.name.lower() == wanted:
                return t
        return None

    def is_team(self, name: str) -> Optional[str]:
        """Canonical team name for ``name``, or None if no such team."""
        team = self.find_team(name)
        return team.name if team else None

    def team_members(self, name: str) -> list[str]:
        """Logins on team ``name``; empty if the team doesn't exist."""
        team = self.find_team(name)
        return list(team.members) if team else []
