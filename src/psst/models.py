"""
Pydantic models for the organization directory.

Members and teams are plain values keyed by strings. A team holds
the logins of its members as they were at fetch time, never
references to Member objects.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Member(BaseModel):
    """A member of the organization.

    Attributes:
        login: Directory login, the case-insensitive identity key.
        name: Display name. Empty when the member never set one.
    """

    model_config = ConfigDict(frozen=True)

    login: str
    name: str = ""


class Team(BaseModel):
    """A team and the logins on it."""

    model_config = ConfigDict(frozen=True)

    name: str
    members: tuple[str, ...] = ()


class Matches(BaseModel):
    """Members and teams that matched a search."""

    members: list[Member] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
