"""Like/dislike ledger.

At most one ``ReviewReaction`` row exists per (user, review). Each call runs as
one transaction that locks the review row, applies the toggle to the ledger and
then rewrites ``likes_count``/``dislikes_count`` from a recount of the ledger,
so the counters can never drift from the rows, whatever order concurrent
requests commit in.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dovi.core.errors import CannotReactToOwnReview, NotFoundError, ReviewNotPublished, ValidationFailed
from dovi.models.companies import Company
from dovi.models.enums import ReactionValue, ReviewStatus
from dovi.models.reviews import Review, ReviewReaction
from dovi.services.invalidation import company_reviews_tag, review_tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactionResult:
    review_id: str
    likes_count: int
    dislikes_count: int
    user_reaction: int | None
    company_slug: str
    tags: tuple[str, ...]


def parse_reaction_value(value: object) -> ReactionValue:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed("Reaction value must be 1 or -1", error_code="VALUE_INVALID")
    try:
        return ReactionValue(value)
    except ValueError:
        raise ValidationFailed("Reaction value must be 1 or -1", error_code="VALUE_INVALID") from None


def ledger_counts(db: Session, *, review_id: str) -> tuple[int, int]:
    stmt = (
        select(ReviewReaction.value, func.count(ReviewReaction.id))
        .where(ReviewReaction.review_id == review_id)
        .group_by(ReviewReaction.value)
    )
    counts = {int(v): int(c) for v, c in db.execute(stmt).all()}
    return counts.get(ReactionValue.like.value, 0), counts.get(ReactionValue.dislike.value, 0)


def user_reaction(db: Session, *, user_id: str, review_id: str) -> int | None:
    stmt = select(ReviewReaction.value).where(
        ReviewReaction.user_id == user_id, ReviewReaction.review_id == review_id
    )
    return db.scalar(stmt)


def react(db: Session, *, user_id: str, review_id: str, value: object) -> ReactionResult:
    """Toggle ``value`` for the user on the review.

    No reaction yet: create it. Same value again: remove it. Opposite value:
    flip it in place.
    """
    wanted = parse_reaction_value(value)

    try:
        return _apply(db, user_id=user_id, review_id=review_id, wanted=wanted)
    except IntegrityError:
        # Two first reactions from the same user raced on the unique key; the
        # retry sees the committed row and toggles against it.
        logger.info("Reaction insert race on review %s (user %s); retrying", review_id, user_id)
    return _apply(db, user_id=user_id, review_id=review_id, wanted=wanted)


def _apply(db: Session, *, user_id: str, review_id: str, wanted: ReactionValue) -> ReactionResult:
    try:
        review = db.scalar(
            select(Review)
            .where(Review.id == review_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if not review:
            raise NotFoundError("Review not found")
        if review.user_id == user_id:
            raise CannotReactToOwnReview()
        if review.status == ReviewStatus.pending.value:
            raise ReviewNotPublished()

        existing = db.scalar(
            select(ReviewReaction)
            .where(ReviewReaction.user_id == user_id, ReviewReaction.review_id == review_id)
            .execution_options(populate_existing=True)
        )
        if existing is None:
            db.add(ReviewReaction(user_id=user_id, review_id=review_id, value=wanted.value))
            current = wanted.value
        elif existing.value == wanted.value:
            db.delete(existing)
            current = None
        else:
            existing.value = wanted.value
            current = wanted.value
        db.flush()

        review.likes_count, review.dislikes_count = ledger_counts(db, review_id=review_id)
        slug = db.scalar(select(Company.slug).where(Company.id == review.company_id))
        likes, dislikes = review.likes_count, review.dislikes_count
        db.commit()
    except Exception:
        db.rollback()
        raise

    return ReactionResult(
        review_id=review_id,
        likes_count=likes,
        dislikes_count=dislikes,
        user_reaction=current,
        company_slug=slug,
        tags=(review_tag(review_id), company_reviews_tag(slug)),
    )
