"""Moderation lifecycle for reviews (and, via ``PROPOSAL_MACHINE``, company proposals).

Status changes go through an explicit transition table and are written with a
compare-and-set UPDATE, so two moderators racing on the same row end with one
success and one ``CONFLICT``; nothing is double counted.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload

from dovi.core.errors import ConflictError, NotFoundError
from dovi.models.enums import ModerationAction, ProposalStatus, ReviewStatus
from dovi.models.moderation import ModerationLog
from dovi.models.reviews import Review
from dovi.services.invalidation import company_reviews_tag, company_tags, review_tag
from dovi.services.ratings import recompute_company_rating

logger = logging.getLogger(__name__)


class StateMachine:
    def __init__(self, entity: str, transitions: Mapping[tuple[str, ModerationAction], str]) -> None:
        self.entity = entity
        self._transitions = dict(transitions)

    def next_state(self, current: str, action: ModerationAction) -> str:
        target = self._transitions.get((current, action))
        if target is None:
            raise ConflictError(
                f"Cannot {action.value} a {current} {self.entity}",
                currentStatus=current,
            )
        return target


REVIEW_MACHINE = StateMachine(
    "review",
    {
        (ReviewStatus.pending.value, ModerationAction.approve): ReviewStatus.approved.value,
        (ReviewStatus.pending.value, ModerationAction.reject): ReviewStatus.rejected.value,
    },
)

PROPOSAL_MACHINE = StateMachine(
    "proposal",
    {
        (ProposalStatus.pending.value, ModerationAction.publish): ProposalStatus.published.value,
        (ProposalStatus.pending.value, ModerationAction.reject): ProposalStatus.rejected.value,
    },
)


@dataclass(frozen=True)
class ModerationResult:
    review_id: str
    status: str
    company_slug: str
    tags: tuple[str, ...]


def record_decision(
    db: Session,
    *,
    actor_id: str | None,
    entity_type: str,
    entity_id: str,
    action: str,
    company_slug: str | None = None,
) -> None:
    db.add(
        ModerationLog(
            actor_id=actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            company_slug=company_slug,
        )
    )


def moderate_review(db: Session, *, review_id: str, action: ModerationAction, actor_id: str | None) -> ModerationResult:
    review = db.scalar(select(Review).options(joinedload(Review.company)).where(Review.id == review_id))
    if not review:
        raise NotFoundError("Review not found")

    current = review.status
    target = REVIEW_MACHINE.next_state(current, action)
    slug = review.company.slug

    try:
        res = db.execute(
            update(Review)
            .where(Review.id == review_id, Review.status == current)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ConflictError("Review was moderated concurrently", currentStatus=current)

        if target == ReviewStatus.approved.value:
            recompute_company_rating(db, company_id=review.company_id)

        record_decision(
            db,
            actor_id=actor_id,
            entity_type="review",
            entity_id=review_id,
            action=action.value,
            company_slug=slug,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(review)
    logger.info("Review %s: %s -> %s by %s", review_id, current, target, actor_id)

    if target == ReviewStatus.approved.value:
        tags = (*company_tags(slug), review_tag(review_id))
    else:
        tags = (company_reviews_tag(slug), review_tag(review_id))
    return ModerationResult(review_id=review_id, status=target, company_slug=slug, tags=tags)


def approve_review(db: Session, *, review_id: str, actor_id: str | None) -> ModerationResult:
    return moderate_review(db, review_id=review_id, action=ModerationAction.approve, actor_id=actor_id)


def reject_review(db: Session, *, review_id: str, actor_id: str | None) -> ModerationResult:
    return moderate_review(db, review_id=review_id, action=ModerationAction.reject, actor_id=actor_id)


def list_pending_reviews(db: Session, *, limit: int, offset: int) -> tuple[list[Review], int]:
    base = select(Review).where(Review.status == ReviewStatus.pending.value)
    total = db.scalar(select(func.count()).select_from(base.subquery()))
    items = db.scalars(
        base.options(joinedload(Review.company), joinedload(Review.user))
        .order_by(Review.created_at.asc())
        .limit(limit)
        .offset(offset)
    ).all()
    return list(items), int(total or 0)
