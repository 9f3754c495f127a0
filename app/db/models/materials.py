"""
MODULE: MATERIALS
Raw materials held in stock and consumed through bills of materials
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import String, Integer, Numeric, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt, HasAuthors
from app.db.models.catalog import MaterialType, UnitOfMeasure, Supplier

if TYPE_CHECKING:
    from app.db.models.products import BOMEntry


class Material(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "material"

    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)

    # Classification
    type_id: Mapped[str] = mapped_column(ForeignKey("material_type.id"), nullable=False, index=True)
    unit_of_measure_id: Mapped[str] = mapped_column(ForeignKey("unit_of_measure.id"), nullable=False, index=True)
    supplier_id: Mapped[str | None] = mapped_column(ForeignKey("supplier.id"), nullable=True, index=True)

    # Cost & Stock
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    current_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minimum_stock_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lead_time_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(String(16), default="ACTIVE", nullable=False)
    # ACTIVE|INACTIVE
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    type: Mapped[MaterialType] = relationship()
    unit_of_measure: Mapped[UnitOfMeasure] = relationship()
    supplier: Mapped[Supplier | None] = relationship()
    bom_entries: Mapped[list["BOMEntry"]] = relationship(back_populates="material")


Index("ix_material_status_name", Material.status, Material.name)
