from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from dovi.core.deps import get_current_user
from dovi.core.errors import NotFoundError
from dovi.db.session import get_db
from dovi.models.companies import Category, Company
from dovi.models.users import User
from dovi.schemas.companies import (
    CategoryListResponse,
    CategoryRef,
    CompanyListItem,
    CompanyListResponse,
    CompanyResponse,
    ProposalCreate,
    ProposalResponse,
)
from dovi.schemas.reviews import ReviewListResponse, ReviewResponse
from dovi.services.invalidation import (
    COMPANIES_TAG,
    category_tag,
    company_reviews_tag,
    company_tag,
    read_cache,
)
from dovi.services.proposals import propose_company
from dovi.services.reviews import REVIEW_SORTS, list_company_reviews

logger = logging.getLogger(__name__)

router = APIRouter(tags=["companies"])

COMPANY_SORTS = {
    "rating": (Company.rating.desc(), Company.review_count.desc(), Company.name),
    "reviews": (Company.review_count.desc(), Company.rating.desc(), Company.name),
    "name": (Company.name,),
    "newest": (Company.created_at.desc(),),
}


def _company_by_slug(db: Session, slug: str) -> Company:
    company = db.scalar(select(Company).options(joinedload(Company.category)).where(Company.slug == slug))
    if not company:
        raise NotFoundError("Company not found")
    return company


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(db: Session = Depends(get_db)) -> CategoryListResponse:
    items = list(db.scalars(select(Category).order_by(Category.name)).all())
    return CategoryListResponse(items=[CategoryRef.model_validate(c) for c in items], total=len(items))


@router.get("/companies", response_model=CompanyListResponse)
def list_companies(
    db: Session = Depends(get_db),
    q: str | None = Query(default=None, max_length=200),
    category: str | None = Query(default=None, max_length=120),
    city: str | None = Query(default=None, max_length=120),
    min_rating: float | None = Query(default=None, ge=0, le=5, alias="minRating"),
    sort: str = Query(default="rating", pattern="^(rating|reviews|name|newest)$"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> CompanyListResponse:
    key = f"companies?q={q}&category={category}&city={city}&min={min_rating}&sort={sort}&l={limit}&o={offset}"
    cached = read_cache.get(key)
    if cached is not None:
        return cached

    stmt = select(Company)
    if q:
        stmt = stmt.where(func.lower(Company.name).like(f"%{q.strip().lower()}%"))
    if category:
        stmt = stmt.join(Category, Company.category_id == Category.id).where(Category.slug == category.strip())
    if city:
        stmt = stmt.where(Company.city == city.strip())
    if min_rating is not None:
        stmt = stmt.where(Company.rating >= min_rating)

    total = db.scalar(select(func.count()).select_from(stmt.subquery()))
    items = list(
        db.scalars(
            stmt.options(joinedload(Company.category)).order_by(*COMPANY_SORTS[sort]).limit(limit).offset(offset)
        ).all()
    )
    response = CompanyListResponse(
        items=[CompanyListItem.model_validate(c) for c in items],
        total=int(total or 0),
    )

    tags = [COMPANIES_TAG]
    if category:
        tags.append(category_tag(category.strip()))
    read_cache.set(key, response, tags=tags)
    return response


@router.get("/companies/{slug}", response_model=CompanyResponse)
def get_company(slug: str, db: Session = Depends(get_db)) -> CompanyResponse:
    key = f"company:{slug}"
    cached = read_cache.get(key)
    if cached is not None:
        return cached

    company = _company_by_slug(db, slug)
    response = CompanyResponse.model_validate(company)
    read_cache.set(key, response, tags=[company_tag(slug), category_tag(company.category.slug)])
    return response


@router.get("/companies/{slug}/reviews", response_model=ReviewListResponse)
def get_company_reviews(
    slug: str,
    db: Session = Depends(get_db),
    sort: str = Query(default="newest", pattern=f"^({'|'.join(REVIEW_SORTS)})$"),
    rating: int | None = Query(default=None, ge=1, le=5),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> ReviewListResponse:
    key = f"company:{slug}:reviews?sort={sort}&rating={rating}&l={limit}&o={offset}"
    cached = read_cache.get(key)
    if cached is not None:
        return cached

    company = _company_by_slug(db, slug)
    items, total = list_company_reviews(
        db, company_id=company.id, limit=limit, offset=offset, sort=sort, rating=rating
    )
    response = ReviewListResponse(items=[ReviewResponse.model_validate(r) for r in items], total=total)
    read_cache.set(key, response, tags=[company_reviews_tag(slug)])
    return response


@router.post("/companies/propose", response_model=ProposalResponse, status_code=201)
def propose(
    payload: ProposalCreate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProposalResponse:
    proposal = propose_company(
        db,
        user_id=current.id,
        name=payload.name,
        slug=payload.slug,
        category_id=payload.category_id,
        description=payload.description,
        website=payload.website,
        city=payload.city,
    )
    db.refresh(proposal)
    return ProposalResponse.model_validate(proposal)
