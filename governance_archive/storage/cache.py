"""
Request-scoped memoization of minted access URLs.

One cache instance belongs to one viewer session; it is never shared at
module level. Entries are keyed by ``(bucket, path, download_name)`` of the
request and expire a safety margin before the signed URL itself does.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Tuple

from ..schemas.records import LocatedObject

CacheKey = Tuple[str, str, Optional[str]]


class SignedUrlCache:
    """Memoizes ``LocatedObject`` results for a session."""

    def __init__(
        self,
        ttl_seconds: float,
        safety_margin_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = max(0.0, ttl_seconds - safety_margin_seconds)
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[float, LocatedObject]] = {}

    @staticmethod
    def key(bucket: str, path: str, download_name: Optional[str] = None) -> CacheKey:
        return (bucket, path, download_name or None)

    def get(
        self, bucket: str, path: str, download_name: Optional[str] = None
    ) -> Optional[LocatedObject]:
        k = self.key(bucket, path, download_name)
        entry = self._entries.get(k)
        if entry is None:
            return None
        expires_at, located = entry
        if self._clock() >= expires_at:
            del self._entries[k]
            return None
        return located

    def put(self, located: LocatedObject) -> None:
        k = self.key(located.requested_bucket, located.requested_path, located.download_name)
        self._entries[k] = (self._clock() + self.ttl_seconds, located)

    def invalidate(self, bucket: Optional[str] = None, path: Optional[str] = None) -> int:
        """Drop entries matching ``bucket`` and/or ``path`` (requested or resolved).

        With no arguments every entry is dropped. Returns the number removed.
        """
        if bucket is None and path is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed

        doomed = []
        for k, (_, located) in self._entries.items():
            buckets = {located.requested_bucket, located.resolved_bucket}
            paths = {located.requested_path, located.resolved_path}
            if bucket is not None and bucket not in buckets:
                continue
            if path is not None and path not in paths:
                continue
            doomed.append(k)
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
