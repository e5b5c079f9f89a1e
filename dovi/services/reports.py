from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from dovi.core.errors import (
    AlreadyReported,
    CannotReportOwnReview,
    NotFoundError,
    ReviewNotPublished,
    ValidationFailed,
)
from dovi.models.companies import Company
from dovi.models.enums import ReportAction, ReportReason, ReviewStatus
from dovi.models.moderation import ModerationLog
from dovi.models.reviews import Review, ReviewReport
from dovi.services.invalidation import company_tags, review_tag
from dovi.services.moderation import record_decision
from dovi.services.ratings import recompute_company_rating
from dovi.services.reviews import purge_review

logger = logging.getLogger(__name__)

COMMENT_MAX = 1000


@dataclass(frozen=True)
class ResolutionResult:
    report_id: str
    action: str
    company_slug: str | None
    already_resolved: bool
    tags: tuple[str, ...] = ()


def parse_reason(reason: object) -> ReportReason:
    if not reason:
        raise ValidationFailed("Report reason is required", error_code="REASON_REQUIRED")
    try:
        return ReportReason(reason)
    except ValueError:
        raise ValidationFailed(
            "Unknown report reason",
            error_code="REASON_INVALID",
            allowed=[r.value for r in ReportReason],
        ) from None


def parse_action(action: object) -> ReportAction:
    try:
        return ReportAction(action)
    except ValueError:
        raise ValidationFailed(
            "Action must be 'keep' or 'delete'",
            error_code="ACTION_INVALID",
            allowed=[a.value for a in ReportAction],
        ) from None


def create_report(db: Session, *, user_id: str, review_id: str, reason: object, comment: str | None) -> ReviewReport:
    parsed = parse_reason(reason)
    clean_comment = (comment or "").strip() or None
    if clean_comment and len(clean_comment) > COMMENT_MAX:
        raise ValidationFailed(
            f"Comment cannot exceed {COMMENT_MAX} characters",
            error_code="COMMENT_TOO_LONG",
            maxLength=COMMENT_MAX,
            currentLength=len(clean_comment),
        )

    review = db.get(Review, review_id)
    if not review:
        raise NotFoundError("Review not found")
    if review.user_id == user_id:
        raise CannotReportOwnReview()
    if review.status == ReviewStatus.pending.value:
        raise ReviewNotPublished()

    exists = db.scalar(
        select(ReviewReport.id).where(ReviewReport.user_id == user_id, ReviewReport.review_id == review_id)
    )
    if exists:
        raise AlreadyReported()

    report = ReviewReport(user_id=user_id, review_id=review_id, reason=parsed.value, comment=clean_comment)
    try:
        db.add(report)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyReported() from None
    except Exception:
        db.rollback()
        raise

    logger.info("Review %s reported by %s (%s)", review_id, user_id, parsed.value)
    return report


def list_open_reports(db: Session, *, limit: int, offset: int) -> tuple[list[ReviewReport], int]:
    total = db.scalar(select(func.count()).select_from(ReviewReport))
    stmt = (
        select(ReviewReport)
        .options(
            joinedload(ReviewReport.user),
            joinedload(ReviewReport.review).joinedload(Review.company),
            joinedload(ReviewReport.review).joinedload(Review.user),
        )
        .order_by(ReviewReport.created_at.asc())
        .limit(limit)
        .offset(offset)
    )
    return list(db.scalars(stmt).unique().all()), int(total or 0)


def _previous_resolution(db: Session, *, report_id: str) -> ResolutionResult:
    entry = db.scalar(
        select(ModerationLog)
        .where(ModerationLog.entity_type == "report", ModerationLog.entity_id == report_id)
        .order_by(ModerationLog.created_at.desc())
        .limit(1)
    )
    if entry is None:
        raise NotFoundError("Report not found")
    return ResolutionResult(
        report_id=report_id,
        action=entry.action,
        company_slug=entry.company_slug,
        already_resolved=True,
    )


def resolve_report(db: Session, *, report_id: str, action: object, actor_id: str | None) -> ResolutionResult:
    """Resolve a complaint with ``keep`` (drop the report) or ``delete`` (drop the review).

    Resolving a report that an earlier decision already consumed is a no-op
    success carrying that decision.
    """
    wanted = parse_action(action)

    report = db.get(ReviewReport, report_id)
    if report is None:
        return _previous_resolution(db, report_id=report_id)
    review_id = report.review_id

    try:
        review = db.scalar(
            select(Review)
            .where(Review.id == review_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if review is None:
            db.rollback()
            return _previous_resolution(db, report_id=report_id)

        company_id = review.company_id
        slug = db.scalar(select(Company.slug).where(Company.id == company_id))

        if wanted is ReportAction.keep:
            res = db.execute(delete(ReviewReport).where(ReviewReport.id == report_id))
            if res.rowcount != 1:
                db.rollback()
                return _previous_resolution(db, report_id=report_id)
            record_decision(
                db,
                actor_id=actor_id,
                entity_type="report",
                entity_id=report_id,
                action=wanted.value,
                company_slug=slug,
            )
            tags: tuple[str, ...] = ()
        else:
            consumed = purge_review(db, review_id=review_id)
            recompute_company_rating(db, company_id=company_id)
            for rid in consumed:
                record_decision(
                    db,
                    actor_id=actor_id,
                    entity_type="report",
                    entity_id=rid,
                    action=wanted.value,
                    company_slug=slug,
                )
            record_decision(
                db,
                actor_id=actor_id,
                entity_type="review",
                entity_id=review_id,
                action="delete",
                company_slug=slug,
            )
            tags = (*company_tags(slug), review_tag(review_id))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Report %s resolved with %s by %s (review %s)", report_id, wanted.value, actor_id, review_id)
    return ResolutionResult(
        report_id=report_id,
        action=wanted.value,
        company_slug=slug,
        already_resolved=False,
        tags=tags,
    )
