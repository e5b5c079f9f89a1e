from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from threading import Lock

from fastapi import Depends, Request

from dovi.core.errors import TooManyRequests


@dataclass
class _Bucket:
    hits: deque[float]
    last_seen: float


class SlidingWindowLimiter:
    """In-process per-key sliding window.

    Single process only: every worker keeps its own buckets.
    """

    def __init__(self, *, max_keys: int = 20_000) -> None:
        self._max_keys = max_keys
        self._lock = Lock()
        self._buckets: dict[str, _Bucket] = {}

    def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Register one call for ``key``; return ``(allowed, retry_after_seconds)``."""
        now = time.monotonic()
        window_start = now - float(window_seconds)

        with self._lock:
            bucket = self._buckets.setdefault(key, _Bucket(hits=deque(), last_seen=now))
            bucket.last_seen = now
            hits = bucket.hits

            while hits and hits[0] <= window_start:
                hits.popleft()

            if len(hits) >= limit:
                retry_after = int(window_seconds - (now - hits[0])) + 1
                return False, max(1, retry_after)

            hits.append(now)
            if len(self._buckets) > self._max_keys:
                self._evict(now, ttl_seconds=window_seconds * 10)
            return True, 0

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _evict(self, now: float, *, ttl_seconds: int) -> None:
        cutoff = now - float(ttl_seconds)
        for key in [k for k, b in self._buckets.items() if b.last_seen < cutoff]:
            del self._buckets[key]


limiter = SlidingWindowLimiter()


def _client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip() or "unknown"
    if request.client:
        return request.client.host
    return "unknown"


def rate_limit(scope: str, *, limit: int, window_seconds: int):
    """Dependency factory throttling an endpoint per client IP."""

    def _dep(request: Request) -> None:
        ok, retry_after = limiter.hit(f"{scope}:{_client_ip(request)}", limit=limit, window_seconds=window_seconds)
        if not ok:
            raise TooManyRequests(headers={"Retry-After": str(retry_after)}, retryAfterSeconds=retry_after)

    return Depends(_dep)
