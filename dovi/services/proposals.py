"""User-submitted company proposals and their publication by moderators."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from dovi.core.errors import ConflictError, NotFoundError, ValidationFailed
from dovi.models.companies import Category, Company, CompanyProposal
from dovi.models.enums import ModerationAction, ProposalStatus
from dovi.services.invalidation import COMPANIES_TAG, category_tag, company_tag
from dovi.services.moderation import PROPOSAL_MACHINE, record_decision
from dovi.services.ratings import recompute_company_rating
from dovi.services.slugs import SLUG_MAX, is_valid_slug, slugify

logger = logging.getLogger(__name__)

NAME_MAX = 200


@dataclass(frozen=True)
class PublishResult:
    proposal_id: str
    company: Company
    category_slug: str
    tags: tuple[str, ...]


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _checked_name(name: Any) -> str:
    clean = _clean(name)
    if not clean:
        raise ValidationFailed("Company name is required", error_code="NAME_REQUIRED")
    if len(clean) > NAME_MAX:
        raise ValidationFailed(f"Company name cannot exceed {NAME_MAX} characters", error_code="NAME_TOO_LONG")
    return clean


def _checked_slug(slug: Any, *, name: str) -> str:
    candidate = (_clean(slug) or "").lower() or slugify(name)
    if not is_valid_slug(candidate):
        raise ValidationFailed(
            "Slug may contain only lowercase latin letters, digits and single hyphens",
            error_code="SLUG_INVALID",
            maxLength=SLUG_MAX,
        )
    return candidate


def _ensure_slug_free(db: Session, slug: str) -> None:
    if db.scalar(select(Company.id).where(Company.slug == slug)) is not None:
        raise ConflictError("A company with this slug already exists", field="slug", slug=slug)


def _category(db: Session, category_id: Any) -> Category:
    category = db.get(Category, category_id) if category_id else None
    if not category:
        raise NotFoundError("Category not found")
    return category


def propose_company(
    db: Session,
    *,
    user_id: str,
    name: Any,
    slug: Any,
    category_id: Any,
    description: Any = None,
    website: Any = None,
    city: Any = None,
) -> CompanyProposal:
    clean_name = _checked_name(name)
    clean_slug = _checked_slug(slug, name=clean_name)
    category = _category(db, category_id)
    _ensure_slug_free(db, clean_slug)

    proposal = CompanyProposal(
        user_id=user_id,
        name=clean_name,
        slug=clean_slug,
        description=_clean(description),
        website=_clean(website),
        city=_clean(city),
        category_id=category.id,
    )
    try:
        db.add(proposal)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Company proposal %s (%s) submitted by %s", proposal.id, clean_slug, user_id)
    return proposal


def list_pending_proposals(db: Session, *, limit: int, offset: int) -> tuple[list[CompanyProposal], int]:
    base = select(CompanyProposal).where(CompanyProposal.status == ProposalStatus.pending.value)
    total = db.scalar(select(func.count()).select_from(base.subquery()))
    items = db.scalars(
        base.options(joinedload(CompanyProposal.category), joinedload(CompanyProposal.user))
        .order_by(CompanyProposal.created_at.asc())
        .limit(limit)
        .offset(offset)
    ).all()
    return list(items), int(total or 0)


def _claim(db: Session, proposal: CompanyProposal, target: str) -> None:
    res = db.execute(
        update(CompanyProposal)
        .where(CompanyProposal.id == proposal.id, CompanyProposal.status == proposal.status)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise ConflictError("Proposal was moderated concurrently", currentStatus=proposal.status)


def publish_proposal(
    db: Session,
    *,
    proposal_id: str,
    overrides: Mapping[str, Any] | None,
    actor_id: str | None,
) -> PublishResult:
    """Turn a pending proposal into a Company, applying moderator overrides.

    Overridable: name, slug, description, city, website, category_id, logo_url
    (``remove_logo`` clears it). Either everything is written or nothing is.
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

    proposal = db.get(CompanyProposal, proposal_id)
    if not proposal:
        raise NotFoundError("Proposal not found")
    PROPOSAL_MACHINE.next_state(proposal.status, ModerationAction.publish)

    name = _checked_name(overrides.get("name", proposal.name))
    slug = _checked_slug(overrides.get("slug", proposal.slug), name=name)
    category = _category(db, overrides.get("category_id", proposal.category_id))
    logo_url = None if overrides.get("remove_logo") else _clean(overrides.get("logo_url", proposal.logo_url))

    try:
        _claim(db, proposal, ProposalStatus.published.value)
        _ensure_slug_free(db, slug)

        company = Company(
            name=name,
            slug=slug,
            description=_clean(overrides.get("description", proposal.description)),
            city=_clean(overrides.get("city", proposal.city)),
            website=_clean(overrides.get("website", proposal.website)),
            logo_url=logo_url,
            category_id=category.id,
        )
        db.add(company)
        db.flush()
        recompute_company_rating(db, company_id=company.id)

        db.execute(
            update(CompanyProposal)
            .where(CompanyProposal.id == proposal.id)
            .values(company_id=company.id)
            .execution_options(synchronize_session=False)
        )
        record_decision(
            db,
            actor_id=actor_id,
            entity_type="proposal",
            entity_id=proposal.id,
            action=ModerationAction.publish.value,
            company_slug=slug,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A company with this slug already exists", field="slug", slug=slug) from None
    except Exception:
        db.rollback()
        raise

    logger.info("Proposal %s published as company %s (%s) by %s", proposal_id, company.id, slug, actor_id)
    return PublishResult(
        proposal_id=proposal_id,
        company=company,
        category_slug=category.slug,
        tags=(COMPANIES_TAG, company_tag(slug), category_tag(category.slug)),
    )


def reject_proposal(db: Session, *, proposal_id: str, actor_id: str | None) -> None:
    proposal = db.get(CompanyProposal, proposal_id)
    if not proposal:
        raise NotFoundError("Proposal not found")
    PROPOSAL_MACHINE.next_state(proposal.status, ModerationAction.reject)

    try:
        _claim(db, proposal, ProposalStatus.rejected.value)
        record_decision(
            db,
            actor_id=actor_id,
            entity_type="proposal",
            entity_id=proposal.id,
            action=ModerationAction.reject.value,
            company_slug=None,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Proposal %s rejected by %s", proposal_id, actor_id)
