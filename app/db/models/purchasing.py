"""
MODULE: PURCHASING
Purchase orders raised against suppliers for materials
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Integer, Numeric, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt, HasAuthors
from app.db.models.catalog import Supplier
from app.db.models.materials import Material


class PurchaseOrder(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    """Purchase order master"""
    __tablename__ = "purchase_order"

    po_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    supplier_id: Mapped[str] = mapped_column(ForeignKey("supplier.id"), nullable=False, index=True)

    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    expected_delivery: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Denormalized sum of line quantity * unit_price, kept by the total aggregator
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
    # PENDING|ACTIVE|IN_PROGRESS|COMPLETED|CANCELLED
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    supplier: Mapped[Supplier] = relationship()
    lines: Mapped[list["PurchaseOrderLine"]] = relationship(
        back_populates="purchase_order", order_by="PurchaseOrderLine.created_at"
    )


class PurchaseOrderLine(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    """Purchase order line items"""
    __tablename__ = "purchase_order_line"

    # Lines may be drafted before they are attached to an order
    po_id: Mapped[str | None] = mapped_column(ForeignKey("purchase_order.id"), nullable=True, index=True)
    material_id: Mapped[str] = mapped_column(ForeignKey("material.id"), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
    # PENDING|ACTIVE|COMPLETED|CANCELLED
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    purchase_order: Mapped[PurchaseOrder | None] = relationship(back_populates="lines")
    material: Mapped[Material] = relationship()


Index("ix_po_supplier_date", PurchaseOrder.supplier_id, PurchaseOrder.order_date)
