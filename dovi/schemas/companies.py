from __future__ import annotations

from datetime import datetime

from pydantic import Field

from dovi.schemas.common import CamelModel


class CategoryRef(CamelModel):
    id: str
    name: str
    slug: str


class RatingBucket(CamelModel):
    rating: int
    count: int
    percentage: int


class CompanyResponse(CamelModel):
    id: str
    name: str
    slug: str
    description: str | None
    city: str | None
    website: str | None
    logo_url: str | None
    rating: float
    review_count: int
    rating_distribution: list[RatingBucket]
    category: CategoryRef
    created_at: datetime


class CompanyListItem(CamelModel):
    id: str
    name: str
    slug: str
    city: str | None
    logo_url: str | None
    rating: float
    review_count: int
    category: CategoryRef


class CompanyListResponse(CamelModel):
    items: list[CompanyListItem]
    total: int


class CategoryListResponse(CamelModel):
    items: list[CategoryRef]
    total: int


class ProposalCreate(CamelModel):
    name: str | None = Field(default=None, max_length=500)
    slug: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    category_id: str | None = None
    website: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, max_length=120)


class ProposalApprove(CamelModel):
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    category_id: str | None = None
    website: str | None = None
    city: str | None = None
    logo_url: str | None = None
    remove_logo: bool | None = None


class ProposalAuthor(CamelModel):
    id: str
    name: str
    email: str
    created_at: datetime


class ProposalResponse(CamelModel):
    id: str
    name: str
    slug: str
    description: str | None
    logo_url: str | None
    website: str | None
    city: str | None
    status: str
    created_at: datetime
    category: CategoryRef
    user: ProposalAuthor | None = None


class ProposalListResponse(CamelModel):
    items: list[ProposalResponse]
    total: int


class PublishedCategory(CamelModel):
    slug: str


class PublishedCompany(CamelModel):
    id: str
    name: str
    slug: str
    category: PublishedCategory


class PublishResponse(CamelModel):
    success: bool = True
    company: PublishedCompany
