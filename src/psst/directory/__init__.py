"""
Organization directory — members and teams, fetched fast and cached.

The GitHub resolver talks to the directory, the fetch engine fans
lookups out over a worker pool, the cache store keeps the result
for an hour, and the Directory facade ties them together.
"""

from .cache import CacheKey, CacheStore
from .facade import Directory
from .fetch import FetchEngine
from .github import GitHubResolver, TeamRef
from .snapshot import DirectorySnapshot

__all__ = [
    "CacheKey",
    "CacheStore",
    "Directory",
    "DirectorySnapshot",
    "FetchEngine",
    "GitHubResolver",
    "TeamRef",
]
