"""Process-local TTL cache for membership checks."""

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from gather.core.config import settings


class MembershipCache:
    """Time-boxed cache of membership results keyed by ``community-user``.

    A performance optimization only: entries are never treated as the source
    of truth and expire after ``ttl_seconds``. Access is guarded by a lock so
    the cache can be shared by request handlers running in worker threads.
    """

    def __init__(
        self,
        ttl_seconds: float = settings.MEMBERSHIP_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[bool, float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(community_id: str, user_id: str) -> str:
        return f"{community_id}-{user_id}"

    def get(self, community_id: str, user_id: str) -> Optional[bool]:
        """Return the cached result, or None when missing or expired."""
        key = self.make_key(community_id, user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            result, stored_at = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return result

    def set(self, community_id: str, user_id: str, result: bool) -> None:
        key = self.make_key(community_id, user_id)
        with self._lock:
            self._entries[key] = (result, self._clock())

    def invalidate(
        self, community_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> None:
        """Drop one entry when both ids are given, otherwise everything."""
        with self._lock:
            if community_id and user_id:
                self._entries.pop(self.make_key(community_id, user_id), None)
            else:
                self._entries.clear()

    def clear(self) -> None:
        self.invalidate()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Shared by every service instance in the process
membership_cache = MembershipCache()
