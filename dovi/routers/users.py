from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dovi.core.deps import get_current_user
from dovi.db.base import utcnow
from dovi.db.session import get_db
from dovi.models.users import User
from dovi.schemas.auth import UserMeResponse
from dovi.schemas.users import ReviewEligibilityResponse
from dovi.services.limits import review_eligibility

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserMeResponse)
def me(current: User = Depends(get_current_user)) -> User:
    return current


@router.get("/me/review-eligibility", response_model=ReviewEligibilityResponse)
def my_review_eligibility(
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewEligibilityResponse:
    """Same gate as ``POST /reviews``, evaluated without submitting."""
    rejection = review_eligibility(db, user=current, now=utcnow())
    if rejection is None:
        return ReviewEligibilityResponse(can_create=True)

    f = rejection.fields
    return ReviewEligibilityResponse(
        can_create=False,
        error_code=rejection.error_code,
        remaining_minutes=f.get("remainingMinutes"),
        cooldown_minutes=f.get("cooldownMinutes"),
        can_create_after=f.get("canCreateAfter"),
        reviews_per_window=f.get("reviewsPerWindow"),
        review_window_hours=f.get("reviewWindowHours"),
    )
