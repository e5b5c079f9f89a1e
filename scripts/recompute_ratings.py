from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

import dovi.models  # noqa: F401
from dovi.core.config import settings
from dovi.core.logging_config import configure_logging
from dovi.db.session import SessionLocal
from dovi.models.companies import Company
from dovi.services.invalidation import company_tags, notify_revalidation
from dovi.services.ratings import recompute_company_rating

logger = logging.getLogger("recompute_ratings")


def recompute_all(db: Session) -> tuple[str, ...]:
    """Recompute every company, committing one at a time; return the tags to revalidate."""
    tags: list[str] = []
    rows = db.execute(select(Company.id, Company.slug).order_by(Company.slug)).all()
    for company_id, slug in rows:
        recompute_company_rating(db, company_id=company_id)
        db.commit()
        tags.extend(company_tags(slug))
    logger.info("Recomputed aggregates for %s companies", len(rows))
    return tuple(dict.fromkeys(tags))


def main() -> int:
    configure_logging(log_dir=settings.log_dir, level=settings.log_level)

    db = SessionLocal()
    try:
        tags = recompute_all(db)
    finally:
        db.close()

    # The API's read caches live in other processes; only the frontend hook reaches a shared cache.
    if tags and settings.revalidate_url:
        asyncio.run(notify_revalidation(tags))
    elif tags:
        logger.info("REVALIDATE_URL not set; cached pages refresh when their TTL expires")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
