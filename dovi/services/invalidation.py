"""Tag-based cache invalidation signal.

State-changing services return the tags they touched; routers hand them to
``emit_invalidation`` after the transaction committed. Listeners (the local
read cache, tests) receive the tags synchronously, and the frontend
revalidation hook is called from a background task. Every failure here is
logged and swallowed: the database is the source of truth and caches are
allowed to lag.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

import aiohttp
from fastapi import BackgroundTasks

from dovi.core.config import settings
from dovi.services.cache import TaggedTTLCache

logger = logging.getLogger(__name__)

Listener = Callable[[tuple[str, ...]], None]

read_cache = TaggedTTLCache(ttl_seconds=settings.company_cache_ttl_seconds, max_items=2048)

_listeners: list[Listener] = []


def company_tag(slug: str) -> str:
    return f"company:{slug}"


def company_reviews_tag(slug: str) -> str:
    return f"company:{slug}:reviews"


def category_tag(slug: str) -> str:
    return f"category:{slug}"


def review_tag(review_id: str) -> str:
    return f"review:{review_id}"


COMPANIES_TAG = "companies"


def company_tags(slug: str) -> list[str]:
    """Everything public that shows a company's aggregates."""
    return [company_tag(slug), company_reviews_tag(slug), COMPANIES_TAG]


def subscribe(listener: Listener) -> Callable[[], None]:
    _listeners.append(listener)

    def _unsubscribe() -> None:
        if listener in _listeners:
            _listeners.remove(listener)

    return _unsubscribe


def _drop_from_read_cache(tags: tuple[str, ...]) -> None:
    dropped = read_cache.invalidate_tags(tags)
    logger.debug("Read cache: dropped %s entries for %s", dropped, tags)


subscribe(_drop_from_read_cache)


def emit_invalidation(tags: Iterable[str], *, background: BackgroundTasks | None = None) -> None:
    unique = tuple(dict.fromkeys(t for t in tags if t))
    if not unique:
        return

    logger.info("Invalidate %s", ", ".join(unique))
    for listener in list(_listeners):
        try:
            listener(unique)
        except Exception:
            logger.exception("Invalidation listener %r failed for %s", listener, unique)

    if not settings.revalidate_url:
        return
    if background is None:
        logger.warning("Revalidation hook skipped for %s: no background runner", unique)
        return
    background.add_task(notify_revalidation, unique)


async def notify_revalidation(tags: tuple[str, ...]) -> None:
    headers = {}
    if settings.revalidate_secret:
        headers["x-revalidate-secret"] = settings.revalidate_secret
    timeout = aiohttp.ClientTimeout(total=settings.revalidate_timeout_seconds)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            for tag in tags:
                try:
                    async with session.post(settings.revalidate_url, params={"tag": tag}, headers=headers) as resp:
                        if resp.status != 200:
                            logger.warning("Revalidation of %s returned HTTP %s", tag, resp.status)
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.warning("Revalidation of %s failed: %s", tag, e)
    except Exception:
        logger.exception("Revalidation hook failed for %s", tags)
