from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from dovi.core.errors import DuplicateReviewText, ReviewAlreadyExists, TextTooShort, ValidationFailed
from dovi.models.enums import ReviewStatus
from dovi.models.reviews import Review

TITLE_MIN = 3
TITLE_MAX = 200
TEXT_MAX = 5000
PROS_CONS_MAX = 1000


@dataclass(frozen=True)
class ReviewDraft:
    company_slug: str
    rating: int
    title: str
    text: str
    pros: str | None
    cons: str | None


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _optional(value: Any, *, field: str, error_code: str) -> str | None:
    cleaned = _clean(value)
    if len(cleaned) > PROS_CONS_MAX:
        raise ValidationFailed(
            f"{field} cannot exceed {PROS_CONS_MAX} characters",
            error_code=error_code,
            maxLength=PROS_CONS_MAX,
            currentLength=len(cleaned),
        )
    return cleaned or None


def validate_review_submission(
    *,
    company_slug: Any,
    rating: Any,
    title: Any,
    text: Any,
    pros: Any = None,
    cons: Any = None,
    min_text_length: int,
) -> ReviewDraft:
    """Check structural constraints and return the trimmed submission."""
    slug = _clean(company_slug)
    if not slug:
        raise ValidationFailed("Company is required", error_code="COMPANY_SLUG_REQUIRED")

    if rating is None or rating == 0:
        raise ValidationFailed("Rating is required", error_code="RATING_REQUIRED")
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationFailed("Rating must be an integer from 1 to 5", error_code="RATING_INVALID")

    clean_title = _clean(title)
    if len(clean_title) < TITLE_MIN:
        raise ValidationFailed(
            f"Title is required (at least {TITLE_MIN} characters)",
            error_code="TITLE_REQUIRED",
            minLength=TITLE_MIN,
            currentLength=len(clean_title),
        )
    if len(clean_title) > TITLE_MAX:
        raise ValidationFailed(
            f"Title cannot exceed {TITLE_MAX} characters",
            error_code="TITLE_TOO_LONG",
            maxLength=TITLE_MAX,
            currentLength=len(clean_title),
        )

    clean_text = _clean(text)
    if len(clean_text) < min_text_length:
        raise TextTooShort(minReviewLength=min_text_length, currentLength=len(clean_text))
    if len(clean_text) > TEXT_MAX:
        raise ValidationFailed(
            f"Review cannot exceed {TEXT_MAX} characters",
            error_code="TEXT_TOO_LONG",
            maxLength=TEXT_MAX,
            currentLength=len(clean_text),
        )

    return ReviewDraft(
        company_slug=slug,
        rating=rating,
        title=clean_title,
        text=clean_text,
        pros=_optional(pros, field="Pros", error_code="PROS_TOO_LONG"),
        cons=_optional(cons, field="Cons", error_code="CONS_TOO_LONG"),
    )


def ensure_no_active_review(db: Session, *, user_id: str, company_id: str) -> None:
    """A user holds at most one pending or approved review per company."""
    stmt = select(Review.id).where(
        Review.user_id == user_id,
        Review.company_id == company_id,
        Review.status.in_([ReviewStatus.pending.value, ReviewStatus.approved.value]),
    )
    if db.scalar(stmt.limit(1)) is not None:
        raise ReviewAlreadyExists()


def ensure_text_not_reused(db: Session, *, user_id: str, text: str) -> None:
    stmt = select(Review.id).where(Review.user_id == user_id, Review.text == text)
    if db.scalar(stmt.limit(1)) is not None:
        raise DuplicateReviewText()
