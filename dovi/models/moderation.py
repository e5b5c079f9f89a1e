from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from dovi.db.base import Base, new_id, utcnow


class ModerationLog(Base):
    """Append-only record of moderator decisions.

    Rows outlive the reviews, reports and proposals they describe, so there are
    no foreign keys on ``entity_id`` or ``actor_id``.
    """

    __tablename__ = "moderation_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    company_slug: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


Index("ix_moderation_log_entity", ModerationLog.entity_type, ModerationLog.entity_id)
