import asyncio

from fastapi import BackgroundTasks

from dovi.core.config import settings
from dovi.services import invalidation
from dovi.services.cache import TaggedTTLCache
from dovi.services.invalidation import company_tags, emit_invalidation, read_cache, subscribe


def test_tagged_cache_drops_by_tag():
    cache = TaggedTTLCache(ttl_seconds=60, max_items=10)
    cache.set("a", 1, tags=["company:acme"])
    cache.set("b", 2, tags=["company:acme:reviews"])
    cache.set("c", 3, tags=["companies", "company:acme"])

    assert cache.invalidate_tags(["company:acme"]) == 2
    assert cache.get("a") is None
    assert cache.get("c") is None
    assert cache.get("b") == 2


def test_tagged_cache_expires(monkeypatch):
    cache = TaggedTTLCache(ttl_seconds=10)
    now = [1000.0]
    monkeypatch.setattr("dovi.services.cache.time.time", lambda: now[0])

    cache.set("k", "v", tags=["t"])
    assert cache.get("k") == "v"
    now[0] += 11
    assert cache.get("k") is None
    assert cache.invalidate_tags(["t"]) == 0


def test_tagged_cache_evicts_oldest_when_full():
    cache = TaggedTTLCache(ttl_seconds=60, max_items=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert cache.get("a") is None
    assert cache.get("c") == 3


def test_emit_dedupes_and_reaches_listeners_and_read_cache():
    seen = []
    unsubscribe = subscribe(seen.append)
    read_cache.set("company:acme", {"x": 1}, tags=["company:acme"])
    try:
        emit_invalidation(["company:acme", "companies", "company:acme", ""])
    finally:
        unsubscribe()

    assert seen == [("company:acme", "companies")]
    assert read_cache.get("company:acme") is None


def test_failing_listener_is_swallowed():
    def boom(tags):
        raise RuntimeError("listener down")

    seen = []
    undo_boom = subscribe(boom)
    undo_seen = subscribe(seen.append)
    try:
        emit_invalidation(company_tags("acme"))
    finally:
        undo_boom()
        undo_seen()

    assert seen == [("company:acme", "company:acme:reviews", "companies")]


def test_revalidation_scheduled_only_when_configured(monkeypatch):
    tasks = BackgroundTasks()
    monkeypatch.setattr(settings, "revalidate_url", "")
    emit_invalidation(["companies"], background=tasks)
    assert tasks.tasks == []

    monkeypatch.setattr(settings, "revalidate_url", "http://frontend/api/revalidate")
    emit_invalidation(["companies", "company:acme"], background=tasks)
    assert len(tasks.tasks) == 1
    assert tasks.tasks[0].func is invalidation.notify_revalidation
    assert tasks.tasks[0].args == (("companies", "company:acme"),)


def test_revalidation_failure_is_swallowed(monkeypatch):
    # Nothing listens on this port; the error must be logged, not raised.
    monkeypatch.setattr(settings, "revalidate_url", "http://127.0.0.1:9/api/revalidate")
    monkeypatch.setattr(settings, "revalidate_timeout_seconds", 1)
    asyncio.run(invalidation.notify_revalidation(("companies",)))
