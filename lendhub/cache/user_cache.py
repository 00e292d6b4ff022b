"""
In-process user cache - avoids repeated user reads inside one process.
Challenge: Notification fan-out looks up the same requestor/owner/holder many times.
Design: Explicit object (not a module global), unbounded, entries live until the same
user is updated. Not coherent across processes; never a source of truth.
"""

import logging
from typing import Generic, TypeVar

from prometheus_client import Counter

logger = logging.getLogger(__name__)

USER_CACHE_LOOKUPS = Counter(
    "lendhub_user_cache_lookups_total",
    "User cache lookups by result",
    ["result"],
)

T = TypeVar("T")


class UserCache(Generic[T]):
    """Unbounded id -> user snapshot map with explicit invalidation."""

    def __init__(self) -> None:
        self._entries: dict[int, T] = {}

    def get(self, user_id: int) -> T | None:
        entry = self._entries.get(user_id)
        USER_CACHE_LOOKUPS.labels(result="miss" if entry is None else "hit").inc()
        return entry

    def set(self, user_id: int, user: T) -> None:
        self._entries[user_id] = user

    def invalidate(self, user_id: int) -> None:
        if self._entries.pop(user_id, None) is not None:
            logger.debug("user cache: invalidated %s", user_id)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
