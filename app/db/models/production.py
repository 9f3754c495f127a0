"""
MODULE: PRODUCTION
Production orders, their routed operations, work centers and quality checks
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, DateTime, Integer, Numeric, ForeignKey, Text, Boolean, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt, HasAuthors

if TYPE_CHECKING:
    from app.db.models.auth import User
    from app.db.models.products import Product
    from app.db.models.sales import CustomerOrder


# ============= WORK CENTERS =============

class WorkCenter(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "work_center"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)
    capacity_per_hour: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_per_hour: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    status: Mapped[str] = mapped_column(String(16), default="ACTIVE", nullable=False)
    # ACTIVE|INACTIVE

    users: Mapped[list["WorkCenterUser"]] = relationship(back_populates="work_center", cascade="all, delete-orphan")


class WorkCenterUser(Base, HasId, HasCreatedAt):
    __tablename__ = "work_center_user"
    __table_args__ = (UniqueConstraint("work_center_id", "user_id", name="uq_work_center_user"),)

    work_center_id: Mapped[str] = mapped_column(ForeignKey("work_center.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("app_user.id"), nullable=False, index=True)
    is_responsible: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    work_center: Mapped[WorkCenter] = relationship(back_populates="users")
    user: Mapped["User"] = relationship()


# ============= PRODUCTION ORDERS =============

class ProductionOrder(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "production_order"

    product_id: Mapped[str] = mapped_column(ForeignKey("product.id"), nullable=False, index=True)
    customer_order_id: Mapped[str | None] = mapped_column(ForeignKey("customer_order.id"), nullable=True, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False, index=True)
    # PENDING|IN_PROGRESS|ACTIVE|COMPLETED|CANCELLED
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    product: Mapped["Product"] = relationship(back_populates="production_orders")
    customer_order: Mapped[Optional["CustomerOrder"]] = relationship()
    operations: Mapped[list["Operation"]] = relationship(back_populates="production_order")
    quality_checks: Mapped[list["QualityCheck"]] = relationship(back_populates="production_order")


Index("ix_production_order_product_status", ProductionOrder.product_id, ProductionOrder.status)


class Operation(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    """One routed step of a production order at a work center"""
    __tablename__ = "operation"

    production_order_id: Mapped[str] = mapped_column(ForeignKey("production_order.id"), nullable=False, index=True)
    work_center_id: Mapped[str] = mapped_column(ForeignKey("work_center.id"), nullable=False, index=True)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
    # PENDING|IN_PROGRESS|COMPLETED|CANCELLED
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    production_order: Mapped[ProductionOrder] = relationship(back_populates="operations")
    work_center: Mapped[WorkCenter] = relationship()


# ============= QUALITY =============

class QualityCheck(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "quality_check"

    production_order_id: Mapped[str] = mapped_column(ForeignKey("production_order.id"), nullable=False, index=True)
    inspector_id: Mapped[str] = mapped_column(ForeignKey("app_user.id"), nullable=False, index=True)
    check_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
    # PENDING|IN_PROGRESS|COMPLETED|CANCELLED
    defects_found: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_taken: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    production_order: Mapped[ProductionOrder] = relationship(back_populates="quality_checks")
    inspector: Mapped["User"] = relationship()
