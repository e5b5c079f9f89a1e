from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dovi.models.companies import Company
from dovi.models.enums import ReviewStatus
from dovi.models.reviews import Review

STARS = (1, 2, 3, 4, 5)


def round_half_up(value: float, places: int = 0) -> float:
    exp = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exp, rounding=ROUND_HALF_UP))


def summarize_ratings(counts: Mapping[int, int]) -> tuple[float, int, list[dict]]:
    """Turn a star -> count histogram into (rating, review_count, distribution)."""
    total = sum(counts.get(star, 0) for star in STARS)
    if total == 0:
        return 0.0, 0, [{"rating": star, "count": 0, "percentage": 0} for star in STARS]

    score = sum(star * counts.get(star, 0) for star in STARS)
    rating = round_half_up(score / total, 1)
    distribution = [
        {
            "rating": star,
            "count": counts.get(star, 0),
            "percentage": int(round_half_up(counts.get(star, 0) / total * 100)),
        }
        for star in STARS
    ]
    return rating, total, distribution


def recompute_company_rating(db: Session, *, company_id: str) -> Company | None:
    """Recompute rating, review_count and rating_distribution from approved reviews.

    A full recount, never a delta, so it is safe to call any number of times.
    Flushes but does not commit: callers run it inside the transaction that
    changed the set of approved reviews.
    """
    db.flush()

    stmt = (
        select(Review.rating, func.count(Review.id))
        .where(Review.company_id == company_id, Review.status == ReviewStatus.approved.value)
        .group_by(Review.rating)
    )
    counts = {int(star): int(cnt) for star, cnt in db.execute(stmt).all()}

    company = db.get(Company, company_id)
    if not company:
        return None

    company.rating, company.review_count, company.rating_distribution = summarize_ratings(counts)
    db.add(company)
    db.flush()
    return company
