from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import String, DateTime, Date, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt, HasAuthors


class User(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "app_user"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)

    role: Mapped[str] = mapped_column(String(16), default="OPERATOR", nullable=False, index=True)
    # ADMIN|MANAGER|OPERATOR|INSPECTOR
    status: Mapped[str] = mapped_column(String(16), default="ACTIVE", nullable=False)
    # ACTIVE|INACTIVE|SUSPENDED
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    inspector: Mapped[Optional["Inspector"]] = relationship(back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Inspector(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    """Quality inspector profile attached to a user"""
    __tablename__ = "inspector"

    user_id: Mapped[str] = mapped_column(ForeignKey("app_user.id"), unique=True, nullable=False)
    employee_code: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    department: Mapped[str | None] = mapped_column(String(128), nullable=True)
    specialization: Mapped[str | None] = mapped_column(String(128), nullable=True)
    certification: Mapped[str | None] = mapped_column(String(128), nullable=True)
    certification_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped[User] = relationship(back_populates="inspector")
