"""Review submission gate: email confirmation, post-registration cooldown and a
rolling per-user submission cap.

The decision itself is a pure function over the user's registration time and
submission history, so it can be evaluated for the eligibility endpoint as well
as on submission.
"""
from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from dovi.core.config import settings
from dovi.core.errors import DomainError, EmailNotActivated, RegisterCooldown, ReviewsLimitExceeded
from dovi.models.reviews import Review
from dovi.models.users import User


@dataclass(frozen=True)
class SubmissionLimits:
    cooldown_minutes: int
    reviews_per_window: int
    window_hours: int

    @property
    def cooldown(self) -> timedelta:
        return timedelta(minutes=self.cooldown_minutes)

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.window_hours)

    @classmethod
    def from_settings(cls) -> "SubmissionLimits":
        return cls(
            cooldown_minutes=settings.review_cooldown_minutes,
            reviews_per_window=settings.reviews_per_window,
            window_hours=settings.review_window_hours,
        )


def _minutes_until(delta: timedelta) -> int:
    return max(1, math.ceil(delta.total_seconds() / 60))


def evaluate_submission(
    *,
    is_email_activated: bool,
    registered_at: datetime,
    history: Iterable[datetime],
    now: datetime,
    limits: SubmissionLimits,
) -> DomainError | None:
    """Return the rejection that applies right now, or None when submission is allowed."""
    if not is_email_activated:
        return EmailNotActivated()

    cooldown_ends = registered_at + limits.cooldown
    if now < cooldown_ends:
        return RegisterCooldown(
            remainingMinutes=_minutes_until(cooldown_ends - now),
            cooldownMinutes=limits.cooldown_minutes,
            canCreateAfter=cooldown_ends.isoformat() + "Z",
        )

    window_start = now - limits.window
    recent = sorted(ts for ts in history if ts > window_start)
    if len(recent) >= limits.reviews_per_window:
        # The slot frees up when the oldest review that still blocks us leaves the window.
        frees_at = recent[len(recent) - limits.reviews_per_window] + limits.window
        return ReviewsLimitExceeded(
            remainingMinutes=_minutes_until(frees_at - now),
            canCreateAfter=frees_at.isoformat() + "Z",
            reviewsPerWindow=limits.reviews_per_window,
            reviewWindowHours=limits.window_hours,
        )

    return None


def submission_history(db: Session, *, user_id: str, since: datetime) -> list[datetime]:
    stmt = select(Review.created_at).where(Review.user_id == user_id, Review.created_at > since)
    return list(db.scalars(stmt).all())


def review_eligibility(
    db: Session,
    *,
    user: User,
    now: datetime,
    limits: SubmissionLimits | None = None,
) -> DomainError | None:
    limits = limits or SubmissionLimits.from_settings()
    history = submission_history(db, user_id=user.id, since=now - limits.window)
    return evaluate_submission(
        is_email_activated=user.is_email_activated,
        registered_at=user.created_at,
        history=history,
        now=now,
        limits=limits,
    )


def check_submission_allowed(
    db: Session,
    *,
    user: User,
    now: datetime,
    limits: SubmissionLimits | None = None,
) -> None:
    rejection = review_eligibility(db, user=user, now=now, limits=limits)
    if rejection is not None:
        raise rejection
