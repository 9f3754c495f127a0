"""
MODULE: CATALOG
Reference data shared by materials, products and purchasing
"""

from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt, HasAuthors


class MaterialType(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "material_type"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class UnitOfMeasure(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "unit_of_measure"

    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Category(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    """Product category"""
    __tablename__ = "category"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Supplier(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    """Vendor/Supplier master"""
    __tablename__ = "supplier"

    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)

    # Contact
    contact_person: Mapped[str | None] = mapped_column(String(128), nullable=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(16), default="ACTIVE", nullable=False)
    # ACTIVE|INACTIVE
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
