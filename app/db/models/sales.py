"""
MODULE: SALES
Customers and the orders they place for finished products
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Integer, Numeric, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt, HasAuthors
from app.db.models.products import Product


class Customer(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "customer"

    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(16), default="ACTIVE", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class CustomerOrder(Base, HasId, HasCreatedAt, HasUpdatedAt, HasAuthors):
    __tablename__ = "customer_order"

    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customer.id"), nullable=False, index=True)

    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    required_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
    # PENDING|IN_PROGRESS|ACTIVE|COMPLETED|CANCELLED
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    customer: Mapped[Customer] = relationship()
    lines: Mapped[list["CustomerOrderLine"]] = relationship(
        back_populates="customer_order", cascade="all, delete-orphan", order_by="CustomerOrderLine.created_at"
    )


class CustomerOrderLine(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "customer_order_line"

    customer_order_id: Mapped[str] = mapped_column(ForeignKey("customer_order.id"), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("product.id"), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)

    customer_order: Mapped[CustomerOrder] = relationship(back_populates="lines")
    product: Mapped[Product] = relationship()
