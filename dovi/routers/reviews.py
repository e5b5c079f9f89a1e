from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from dovi.core.deps import get_current_user, get_optional_user
from dovi.db.session import get_db
from dovi.models.users import User
from dovi.schemas.common import SuccessResponse
from dovi.schemas.reviews import (
    ReactionRequest,
    ReactionResponse,
    ReportCreate,
    ReviewCreate,
    ReviewDeletedResponse,
    ReviewDetailResponse,
    ReviewListResponse,
    ReviewResponse,
)
from dovi.services.invalidation import emit_invalidation
from dovi.services.reactions import react, user_reaction
from dovi.services.reports import create_report
from dovi.services.reviews import delete_review, get_visible_review, list_user_reviews, submit_review

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewResponse, status_code=201)
def create_review(
    payload: ReviewCreate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewResponse:
    review = submit_review(
        db,
        user_id=current.id,
        company_slug=payload.company_slug,
        rating=payload.rating,
        title=payload.title,
        text=payload.text,
        pros=payload.pros,
        cons=payload.cons,
    )
    # Pending reviews are not public yet, so there is nothing to invalidate.
    return ReviewResponse.model_validate(review)


@router.get("/me", response_model=ReviewListResponse)
def my_reviews(
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewListResponse:
    items = list_user_reviews(db, user_id=current.id)
    return ReviewListResponse(items=[ReviewResponse.model_validate(r) for r in items], total=len(items))


@router.get("/{review_id}", response_model=ReviewDetailResponse)
def get_review(
    review_id: str,
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> ReviewDetailResponse:
    review = get_visible_review(db, review_id=review_id, viewer=viewer)
    detail = ReviewDetailResponse.model_validate(review)
    if viewer is not None:
        detail.user_reaction = user_reaction(db, user_id=viewer.id, review_id=review.id)
    return detail


@router.delete("/{review_id}", response_model=ReviewDeletedResponse)
def remove_review(
    review_id: str,
    background_tasks: BackgroundTasks,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewDeletedResponse:
    result = delete_review(db, review_id=review_id, actor=current)
    emit_invalidation(result.tags, background=background_tasks)
    return ReviewDeletedResponse(company_slug=result.company_slug)


@router.post("/{review_id}/react", response_model=ReactionResponse)
def react_to_review(
    review_id: str,
    payload: ReactionRequest,
    background_tasks: BackgroundTasks,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReactionResponse:
    result = react(db, user_id=current.id, review_id=review_id, value=payload.value)
    emit_invalidation(result.tags, background=background_tasks)
    return ReactionResponse(
        likes_count=result.likes_count,
        dislikes_count=result.dislikes_count,
        company_slug=result.company_slug,
        user_reaction=result.user_reaction,
    )


@router.post("/{review_id}/report", response_model=SuccessResponse)
def report_review(
    review_id: str,
    payload: ReportCreate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    create_report(db, user_id=current.id, review_id=review_id, reason=payload.reason, comment=payload.comment)
    return SuccessResponse()
