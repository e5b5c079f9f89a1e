from __future__ import annotations

from datetime import timedelta
from itertools import count

from dovi.core.security import create_access_token
from dovi.db.base import utcnow
from dovi.models.companies import Category, Company
from dovi.models.enums import ReviewStatus, UserRole
from dovi.models.reviews import Review
from dovi.models.users import User

_seq = count(1)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def token_for(user: User) -> str:
    return create_access_token(user.id, role=user.role)


def headers_for(user: User) -> dict[str, str]:
    return auth_header(token_for(user))


def make_user(
    db,
    *,
    role: UserRole = UserRole.user,
    activated: bool = True,
    registered_ago: timedelta = timedelta(days=2),
    email: str | None = None,
) -> User:
    n = next(_seq)
    user = User(
        name=f"User {n}",
        email=email or f"user{n}@example.com",
        # Never used for login in these tests.
        password_hash="x",
        role=role.value,
        is_email_activated=activated,
        created_at=utcnow() - registered_ago,
    )
    db.add(user)
    db.commit()
    return user


def make_category(db, *, slug: str | None = None) -> Category:
    n = next(_seq)
    category = Category(name=f"Category {n}", slug=slug or f"category-{n}")
    db.add(category)
    db.commit()
    return category


def make_company(db, *, slug: str | None = None, category: Category | None = None) -> Company:
    n = next(_seq)
    category = category or make_category(db)
    company = Company(name=f"Company {n}", slug=slug or f"company-{n}", category_id=category.id)
    db.add(company)
    db.commit()
    return company


def make_review(
    db,
    *,
    user: User,
    company: Company,
    rating: int = 5,
    status: ReviewStatus = ReviewStatus.approved,
    created_at=None,
    text: str | None = None,
) -> Review:
    n = next(_seq)
    review = Review(
        company_id=company.id,
        user_id=user.id,
        rating=rating,
        title=f"Review {n}",
        text=text or f"Detailed review text number {n}",
        status=status.value,
        created_at=created_at or utcnow(),
    )
    db.add(review)
    db.commit()
    return review
