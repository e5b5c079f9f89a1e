from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, joinedload

from dovi.core.config import settings
from dovi.core.errors import CanOnlyDeleteOwnReviews, NotFoundError
from dovi.db.base import utcnow
from dovi.models.companies import Company
from dovi.models.enums import ReviewStatus
from dovi.models.reviews import Review, ReviewReaction, ReviewReport
from dovi.models.users import User
from dovi.services.invalidation import company_tags, review_tag
from dovi.services.limits import SubmissionLimits, check_submission_allowed
from dovi.services.moderation import record_decision
from dovi.services.ratings import recompute_company_rating
from dovi.services.validation import ensure_no_active_review, ensure_text_not_reused, validate_review_submission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionResult:
    review_id: str
    company_slug: str
    tags: tuple[str, ...]


def submit_review(
    db: Session,
    *,
    user_id: str,
    company_slug: Any,
    rating: Any,
    title: Any,
    text: Any,
    pros: Any = None,
    cons: Any = None,
    now: datetime | None = None,
    limits: SubmissionLimits | None = None,
) -> Review:
    """Create a pending review after the submission gate and validation pass.

    The author's row is locked for the duration so that concurrent submissions
    from one user are counted against the window one at a time.
    """
    now = now or utcnow()
    try:
        user = db.scalar(
            select(User).where(User.id == user_id).with_for_update().execution_options(populate_existing=True)
        )
        if not user:
            raise NotFoundError("User not found")

        check_submission_allowed(db, user=user, now=now, limits=limits)

        draft = validate_review_submission(
            company_slug=company_slug,
            rating=rating,
            title=title,
            text=text,
            pros=pros,
            cons=cons,
            min_text_length=settings.min_review_length,
        )

        company = db.scalar(select(Company).where(Company.slug == draft.company_slug))
        if not company:
            raise NotFoundError("Company not found")

        ensure_no_active_review(db, user_id=user.id, company_id=company.id)
        ensure_text_not_reused(db, user_id=user.id, text=draft.text)

        review = Review(
            company_id=company.id,
            user_id=user.id,
            rating=draft.rating,
            title=draft.title,
            text=draft.text,
            pros=draft.pros,
            cons=draft.cons,
            status=ReviewStatus.pending.value,
            created_at=now,
        )
        db.add(review)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(review)
    logger.info("Review %s submitted by %s for %s (pending)", review.id, user_id, company.slug)
    return review


def purge_review(db: Session, *, review_id: str) -> list[str]:
    """Delete a review with its reactions and reports; return the removed report ids.

    Runs inside the caller's transaction.
    """
    report_ids = list(db.scalars(select(ReviewReport.id).where(ReviewReport.review_id == review_id)).all())
    db.execute(delete(ReviewReaction).where(ReviewReaction.review_id == review_id))
    db.execute(delete(ReviewReport).where(ReviewReport.review_id == review_id))
    db.execute(delete(Review).where(Review.id == review_id))
    return report_ids


def delete_review(db: Session, *, review_id: str, actor: User) -> DeletionResult:
    """Authors may delete their own reviews; admins may delete any."""
    review = db.get(Review, review_id)
    if not review:
        raise NotFoundError("Review not found")
    if review.user_id != actor.id and not actor.is_admin:
        raise CanOnlyDeleteOwnReviews()

    company_id, author_id = review.company_id, review.user_id
    try:
        slug = db.scalar(select(Company.slug).where(Company.id == company_id))
        consumed = purge_review(db, review_id=review_id)
        recompute_company_rating(db, company_id=company_id)
        # Reports lose their review here; keep a resolution so resolving them later is a no-op.
        for rid in consumed:
            record_decision(
                db,
                actor_id=actor.id,
                entity_type="report",
                entity_id=rid,
                action="delete",
                company_slug=slug,
            )
        if author_id != actor.id:
            record_decision(
                db,
                actor_id=actor.id,
                entity_type="review",
                entity_id=review_id,
                action="delete",
                company_slug=slug,
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Review %s deleted by %s", review_id, actor.id)
    return DeletionResult(
        review_id=review_id,
        company_slug=slug,
        tags=(*company_tags(slug), review_tag(review_id)),
    )


def get_visible_review(db: Session, *, review_id: str, viewer: User | None) -> Review:
    """Approved reviews are public; other states only to the author and admins."""
    review = db.scalar(
        select(Review)
        .options(joinedload(Review.company).joinedload(Company.category), joinedload(Review.user))
        .where(Review.id == review_id)
    )
    if not review:
        raise NotFoundError("Review not found")
    if review.status != ReviewStatus.approved.value:
        if viewer is None or (viewer.id != review.user_id and not viewer.is_admin):
            raise NotFoundError("Review not found")
    return review


def list_user_reviews(db: Session, *, user_id: str) -> list[Review]:
    stmt = (
        select(Review)
        .options(joinedload(Review.company).joinedload(Company.category))
        .where(Review.user_id == user_id)
        .order_by(Review.created_at.desc())
    )
    return list(db.scalars(stmt).all())


REVIEW_SORTS = {
    "newest": (Review.created_at.desc(),),
    "oldest": (Review.created_at.asc(),),
    "rating_desc": (Review.rating.desc(), Review.created_at.desc()),
    "rating_asc": (Review.rating.asc(), Review.created_at.desc()),
    "useful": (Review.likes_count.desc(), Review.created_at.desc()),
}


def list_company_reviews(
    db: Session,
    *,
    company_id: str,
    limit: int,
    offset: int,
    sort: str = "newest",
    rating: int | None = None,
) -> tuple[list[Review], int]:
    stmt = select(Review).where(Review.company_id == company_id, Review.status == ReviewStatus.approved.value)
    if rating is not None:
        stmt = stmt.where(Review.rating == rating)

    total = db.scalar(select(func.count()).select_from(stmt.subquery()))
    order = REVIEW_SORTS.get(sort, REVIEW_SORTS["newest"])
    items = db.scalars(
        stmt.options(joinedload(Review.user)).order_by(*order).limit(limit).offset(offset)
    ).all()
    return list(items), int(total or 0)

