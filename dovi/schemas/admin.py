from __future__ import annotations

from datetime import datetime

from dovi.schemas.common import CamelModel
from dovi.schemas.reviews import ReviewAuthor, ReviewCompanyRef


class ModerationResponse(CamelModel):
    success: bool = True
    company_slug: str
    status: str


class ResolveRequest(CamelModel):
    action: str | None = None


class ResolveResponse(CamelModel):
    success: bool = True
    company_slug: str | None
    action: str
    already_resolved: bool = False


class AdminUserRef(ReviewAuthor):
    email: str


class PendingReviewResponse(CamelModel):
    id: str
    rating: int
    title: str
    text: str
    pros: str | None
    cons: str | None
    created_at: datetime
    user: AdminUserRef
    company: ReviewCompanyRef


class PendingReviewListResponse(CamelModel):
    items: list[PendingReviewResponse]
    total: int


class ReportedReview(CamelModel):
    id: str
    title: str
    text: str
    rating: int
    status: str
    company: ReviewCompanyRef
    user: AdminUserRef


class ReportResponse(CamelModel):
    id: str
    reason: str
    comment: str | None
    created_at: datetime
    review: ReportedReview
    user: AdminUserRef


class ReportListResponse(CamelModel):
    items: list[ReportResponse]
    total: int
