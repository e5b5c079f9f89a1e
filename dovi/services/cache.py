from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any


@dataclass
class _Entry:
    value: Any
    expires_at: float
    tags: frozenset[str] = field(default_factory=frozenset)


class TaggedTTLCache:
    """In-process read cache whose entries can be dropped by tag.

    Entries expire after ``ttl_seconds`` on their own; ``invalidate_tags`` drops
    every entry carrying any of the given tags immediately.
    """

    def __init__(self, ttl_seconds: int = 60, max_items: int = 1024):
        self.ttl_seconds = ttl_seconds
        self.max_items = max_items
        self._data: dict[str, _Entry] = {}
        self._by_tag: dict[str, set[str]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Any | None:
        now = time.time()
        with self._lock:
            ent = self._data.get(key)
            if not ent:
                return None
            if ent.expires_at < now:
                self._drop(key)
                return None
            return ent.value

    def set(self, key: str, value: Any, *, tags: Iterable[str] = ()) -> None:
        now = time.time()
        with self._lock:
            if key in self._data:
                self._drop(key)
            elif len(self._data) >= self.max_items:
                self._drop(next(iter(self._data)))
            ent = _Entry(value=value, expires_at=now + self.ttl_seconds, tags=frozenset(tags))
            self._data[key] = ent
            for tag in ent.tags:
                self._by_tag.setdefault(tag, set()).add(key)

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        dropped = 0
        with self._lock:
            for tag in tags:
                for key in list(self._by_tag.get(tag, ())):
                    self._drop(key)
                    dropped += 1
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._by_tag.clear()

    def _drop(self, key: str) -> None:
        ent = self._data.pop(key, None)
        if not ent:
            return
        for tag in ent.tags:
            keys = self._by_tag.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                self._by_tag.pop(tag, None)
