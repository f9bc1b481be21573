"""
GitHub identity resolver — who is in the org, and on which teams.

Wraps a requests session against the GitHub REST API. List endpoints
are paginated by following the ``Link: rel="next"`` header until
GitHub stops sending one. Every call carries the per-call timeout, which
requests applies to the connect and to each socket read, not to the
whole exchange. A body that is not the JSON shape an endpoint promises
is a TransportError like any failed request.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, NamedTuple, Optional

import requests

from ..errors import AuthError, TransportError
from ..models import Member

logger = logging.getLogger("psst.directory.github")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 2.0
DEFAULT_PER_PAGE = 100

# Team containing every member of a GitHub organization
GH_ALL_TEAM = "all"


class TeamRef(NamedTuple):
    """A team as listed by the org, before its roster is resolved."""

    id: int
    name: str
    slug: str


class GitHubResolver:
    """Resolves logins and teams for one GitHub organization.

    Args:
        org: Organization login scoping every query.
        token: GitHub token for the authenticated caller.
        api_url: REST endpoint (override for GitHub Enterprise).
        timeout: Seconds allowed to connect and for each read.
        per_page: Page size requested from list endpoints.
        session: Pre-built session. Tests inject a mock here.
    """

    def __init__(
        self,
        org: str,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        per_page: int = DEFAULT_PER_PAGE,
        session: Optional[requests.Session] = None,
    ):
        self.org = org
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.per_page = per_page
        self._whoami: Optional[str] = None

        if session is None:
            session = requests.Session()
            session.headers.update({
                "Accept": "application/vnd.github+json",
                "User-Agent": "psst",
            })
            if token:
                session.headers["Authorization"] = f"Bearer {token}"
        self._session = session

    def _get(self, url: str, params: Optional[dict] = None) -> requests.Response:
        """Issue one GET and turn every failure into a TransportError."""
        if not url.startswith("http"):
            url = f"{self.api_url}{url}"
        try:
            resp = self._session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            raise TransportError(f"GET {url} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise TransportError(f"GET {url} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise TransportError(
                f"GET {url}: {resp.status_code} {resp.text[:200]}",
                status=resp.status_code,
            )
        return resp

    def _get_json(
        self, url: str, params: Optional[dict] = None, expect: type = dict,
    ) -> tuple[Any, requests.Response]:
        """GET and decode a JSON body of the expected type."""
        resp = self._get(url, params=params)
        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportError(f"GET {url}: response is not JSON: {exc}") from exc
        if not isinstance(data, expect):
            raise TransportError(
                f"GET {url}: expected a {expect.__name__}, got {type(data).__name__}"
            )
        return data, resp

    @staticmethod
    def _field(item: Any, key: str, path: str) -> Any:
        """Required field of a listed item."""
        try:
            return item[key]
        except (KeyError, TypeError) as exc:
            raise TransportError(f"{path}: item without '{key}'") from exc

    def _paginate(self, path: str, params: Optional[dict] = None) -> Iterator[Any]:
        """Yield every item of a list endpoint, page by page."""
        query = dict(params or {})
        query.setdefault("per_page", self.per_page)

        url: Optional[str] = path
        page = 0
        while url:
            items, resp = self._get_json(url, params=query, expect=list)
            page += 1
            logger.debug("%s page %d: %d item(s)", path, page, len(items))
            yield from items

            # The next link already carries every query parameter
            url = (resp.links or {}).get("next", {}).get("url")
            query = None

    def whoami(self) -> str:
        """Login of the identity the token belongs to.

        Raises:
            AuthError: If GitHub can't tell us who we are.
        """
        if self._whoami is None:
            try:
                data, _ = self._get_json("/user")
            except TransportError as exc:
                raise AuthError(f"unable to get authenticated user's login: {exc}") from exc
            login = data.get("login")
            if not login:
                raise AuthError("unable to get authenticated user's login: no login in response")
            self._whoami = login
        return self._whoami

    def get_user(self, login: str) -> Member:
        """Resolve a login to a Member with its display name."""
        data, _ = self._get_json(f"/users/{login}")
        return Member(login=login, name=data.get("name") or "")

    def list_org_members(self) -> Iterator[str]:
        """Logins of every org member, lazily across pages."""
        path = f"/orgs/{self.org}/members"
        for item in self._paginate(path):
            yield self._field(item, "login", path)

    def list_teams(self) -> Iterator[TeamRef]:
        """Every team in the org, lazily across pages."""
        path = f"/orgs/{self.org}/teams"
        for item in self._paginate(path):
            yield TeamRef(
                id=self._field(item, "id", path),
                name=self._field(item, "name", path),
                slug=self._field(item, "slug", path),
            )

    def list_team_members(self, slug: str) -> list[str]:
        """Logins on a team, all pages accumulated."""
        path = f"/orgs/{self.org}/teams/{slug}/members"
        return [
            self._field(item, "login", path)
            for item in self._paginate(path, {"role": "all"})
        ]

    def list_user_team_memberships(self, login: str) -> list[str]:
        """Names of the caller's teams inside this org.

        GitHub only reports team memberships for the authenticated
        user, so ``login`` must be the caller. Teams belonging to
        other organizations are dropped.
        """
        path = "/user/teams"
        org = self.org.lower()
        names = []
        for item in self._paginate(path):
            if not isinstance(item, dict):
                raise TransportError(f"{path}: expected an object, got {type(item).__name__}")
            team_org = (item.get("organization") or {}).get("login") or ""
            if team_org.lower() == org:
                names.append(self._field(item, "name", path))
        logger.debug("%s is on %d team(s) in %s", login, len(names), self.org)
        return names
