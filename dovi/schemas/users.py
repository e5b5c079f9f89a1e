from __future__ import annotations

from dovi.schemas.common import CamelModel


class ReviewEligibilityResponse(CamelModel):
    can_create: bool
    error_code: str | None = None
    remaining_minutes: int | None = None
    cooldown_minutes: int | None = None
    can_create_after: str | None = None
    reviews_per_window: int | None = None
    review_window_hours: int | None = None
