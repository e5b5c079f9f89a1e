from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dovi.db.base import Base, new_id, utcnow
from dovi.models.enums import ReviewStatus


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    company_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    text: Mapped[str] = mapped_column(String(5000), nullable=False)
    pros: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    cons: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ReviewStatus.pending.value, index=True)

    # Cache of the reaction ledger, rewritten from it on every reaction.
    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dislikes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    company: Mapped["Company"] = relationship(back_populates="reviews")
    user: Mapped["User"] = relationship(back_populates="reviews")
    reactions: Mapped[list["ReviewReaction"]] = relationship(
        back_populates="review", cascade="all, delete-orphan", passive_deletes=True
    )
    reports: Mapped[list["ReviewReport"]] = relationship(
        back_populates="review", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        CheckConstraint("likes_count >= 0 AND dislikes_count >= 0", name="ck_reviews_counters"),
    )


class ReviewReaction(Base):
    __tablename__ = "review_reactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    review_id: Mapped[str] = mapped_column(String(36), ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    review: Mapped[Review] = relationship(back_populates="reactions")

    __table_args__ = (
        UniqueConstraint("user_id", "review_id", name="uq_review_reactions_user_review"),
        CheckConstraint("value IN (1, -1)", name="ck_review_reactions_value"),
    )


class ReviewReport(Base):
    __tablename__ = "review_reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    review_id: Mapped[str] = mapped_column(String(36), ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    review: Mapped[Review] = relationship(back_populates="reports")
    user: Mapped["User"] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "review_id", name="uq_review_reports_user_review"),
    )


Index("ix_reviews_company_status", Review.company_id, Review.status)
Index("ix_reviews_user_created_at", Review.user_id, Review.created_at)
