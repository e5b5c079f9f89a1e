from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dovi.db.base import Base, new_id, utcnow
from dovi.models.enums import UserRole


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.user.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_email_activated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Registration time; drives the review cooldown.
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    reviews: Mapped[list["Review"]] = relationship(back_populates="user", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role in {UserRole.admin.value, UserRole.super_admin.value}
