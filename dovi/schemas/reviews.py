from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from dovi.schemas.common import CamelModel
from dovi.schemas.companies import CategoryRef, RatingBucket


class ReviewCreate(CamelModel):
    # Loosely typed on purpose: the review validator owns these rules and
    # answers with specific error codes.
    company_slug: str | None = None
    rating: Any = None
    title: str | None = None
    text: str | None = None
    pros: str | None = None
    cons: str | None = None


class ReviewAuthor(CamelModel):
    id: str
    name: str


class ReviewCompanyRef(CamelModel):
    id: str
    name: str
    slug: str
    city: str | None = None


class ReviewResponse(CamelModel):
    id: str
    rating: int
    title: str
    text: str
    pros: str | None
    cons: str | None
    status: str
    created_at: datetime
    likes_count: int
    dislikes_count: int
    user: ReviewAuthor | None = None
    company: ReviewCompanyRef | None = None


class ReviewListResponse(CamelModel):
    items: list[ReviewResponse]
    total: int


class ReviewDetailCompany(CamelModel):
    id: str
    name: str
    slug: str
    city: str | None
    rating: float
    review_count: int
    rating_distribution: list[RatingBucket]
    category: CategoryRef


class ReviewDetailResponse(ReviewResponse):
    user_reaction: int | None = None
    company: ReviewDetailCompany | None = None


class ReactionRequest(CamelModel):
    value: Any = None


class ReactionResponse(CamelModel):
    success: bool = True
    likes_count: int
    dislikes_count: int
    company_slug: str
    user_reaction: int | None


class ReportCreate(CamelModel):
    reason: str | None = None
    comment: str | None = Field(default=None, max_length=5000)


class ReviewDeletedResponse(CamelModel):
    success: bool = True
    company_slug: str
