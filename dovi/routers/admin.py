from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from dovi.core.deps import require_admin
from dovi.db.session import get_db
from dovi.models.users import User
from dovi.schemas.admin import (
    ModerationResponse,
    PendingReviewListResponse,
    PendingReviewResponse,
    ReportListResponse,
    ReportResponse,
    ResolveRequest,
    ResolveResponse,
)
from dovi.schemas.common import SuccessResponse
from dovi.schemas.companies import (
    ProposalApprove,
    ProposalListResponse,
    ProposalResponse,
    PublishedCategory,
    PublishedCompany,
    PublishResponse,
)
from dovi.schemas.reviews import ReviewDeletedResponse
from dovi.services.invalidation import emit_invalidation
from dovi.services.moderation import approve_review, list_pending_reviews, reject_review
from dovi.services.proposals import list_pending_proposals, publish_proposal, reject_proposal
from dovi.services.reports import list_open_reports, resolve_report
from dovi.services.reviews import delete_review

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/reviews", response_model=PendingReviewListResponse)
def pending_reviews(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> PendingReviewListResponse:
    items, total = list_pending_reviews(db, limit=limit, offset=offset)
    return PendingReviewListResponse(items=[PendingReviewResponse.model_validate(r) for r in items], total=total)


@router.post("/reviews/{review_id}/approve", response_model=ModerationResponse)
def approve(
    review_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ModerationResponse:
    result = approve_review(db, review_id=review_id, actor_id=admin.id)
    emit_invalidation(result.tags, background=background_tasks)
    return ModerationResponse(company_slug=result.company_slug, status=result.status)


@router.post("/reviews/{review_id}/reject", response_model=ModerationResponse)
def reject(
    review_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ModerationResponse:
    result = reject_review(db, review_id=review_id, actor_id=admin.id)
    emit_invalidation(result.tags, background=background_tasks)
    return ModerationResponse(company_slug=result.company_slug, status=result.status)


@router.delete("/reviews/{review_id}", response_model=ReviewDeletedResponse)
def remove_review(
    review_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ReviewDeletedResponse:
    result = delete_review(db, review_id=review_id, actor=admin)
    emit_invalidation(result.tags, background=background_tasks)
    return ReviewDeletedResponse(company_slug=result.company_slug)


@router.get("/reports", response_model=ReportListResponse)
def open_reports(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ReportListResponse:
    items, total = list_open_reports(db, limit=limit, offset=offset)
    return ReportListResponse(items=[ReportResponse.model_validate(r) for r in items], total=total)


@router.post("/reports/{report_id}/resolve", response_model=ResolveResponse)
def resolve(
    report_id: str,
    payload: ResolveRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ResolveResponse:
    result = resolve_report(db, report_id=report_id, action=payload.action, actor_id=admin.id)
    emit_invalidation(result.tags, background=background_tasks)
    return ResolveResponse(
        company_slug=result.company_slug,
        action=result.action,
        already_resolved=result.already_resolved,
    )


@router.get("/companies/proposals", response_model=ProposalListResponse)
def pending_proposals(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ProposalListResponse:
    items, total = list_pending_proposals(db, limit=limit, offset=offset)
    return ProposalListResponse(items=[ProposalResponse.model_validate(p) for p in items], total=total)


@router.post("/companies/proposals/{proposal_id}/approve", response_model=PublishResponse)
def publish(
    proposal_id: str,
    background_tasks: BackgroundTasks,
    payload: ProposalApprove | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PublishResponse:
    overrides = payload.model_dump(exclude_none=True) if payload else {}
    result = publish_proposal(db, proposal_id=proposal_id, overrides=overrides, actor_id=admin.id)
    emit_invalidation(result.tags, background=background_tasks)
    company = result.company
    return PublishResponse(
        company=PublishedCompany(
            id=company.id,
            name=company.name,
            slug=company.slug,
            category=PublishedCategory(slug=result.category_slug),
        )
    )


@router.post("/companies/proposals/{proposal_id}/reject", response_model=SuccessResponse)
def reject_company_proposal(
    proposal_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> SuccessResponse:
    reject_proposal(db, proposal_id=proposal_id, actor_id=admin.id)
    return SuccessResponse()
