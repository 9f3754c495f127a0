"""
MODULE: PRODUCTS
Finished goods and their bills of materials
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import String, Integer, Numeric, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt, HasAuthors
from app.db.models.catalog import Category
from app.db.models.materials import Material

if TYPE_CHECKING:
    from app.db.models.production import ProductionOrder


class Product(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "product"

    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[str | None] = mapped_column(ForeignKey("category.id"), nullable=True, index=True)

    selling_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    current_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minimum_stock_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(String(16), default="ACTIVE", nullable=False)
    # ACTIVE|INACTIVE|ARCHIVED

    category: Mapped[Category | None] = relationship()
    bom_entries: Mapped[list["BOMEntry"]] = relationship(back_populates="product")
    production_orders: Mapped[list["ProductionOrder"]] = relationship(back_populates="product")


class BOMEntry(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    """Quantity of one material needed per unit of one product."""
    __tablename__ = "bom_entry"
    __table_args__ = (UniqueConstraint("product_id", "material_id", name="uq_bom_entry_product_material"),)

    product_id: Mapped[str] = mapped_column(ForeignKey("product.id"), nullable=False, index=True)
    material_id: Mapped[str] = mapped_column(ForeignKey("material.id"), nullable=False, index=True)

    quantity_needed: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    waste_percentage: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=0, nullable=False)

    product: Mapped[Product] = relationship(back_populates="bom_entries")
    material: Mapped[Material] = relationship(back_populates="bom_entries")
