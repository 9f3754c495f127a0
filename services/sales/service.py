from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.models.products import Product
from app.db.models.production import ProductionOrder
from app.db.models.sales import Customer, CustomerOrder, CustomerOrderLine
from services._crud import apply_updates, commit_or_conflict, get_or_404, reject_if_referenced
from services._numbering import next_yearly_number
from services.purchasing.aggregator import lines_total

logger = logging.getLogger(__name__)


def delete_customer(db: Session, customer_id: str) -> None:
    row = get_or_404(db, Customer, customer_id, "Customer")
    reject_if_referenced(db, CustomerOrder, CustomerOrder.customer_id, customer_id,
                         "Cannot delete customer with associated orders")
    db.delete(row)
    db.commit()


def _build_lines(db: Session, lines: list[dict]) -> list[CustomerOrderLine]:
    out = []
    for ln in lines:
        get_or_404(db, Product, ln["product_id"], "Product")
        out.append(CustomerOrderLine(
            product_id=ln["product_id"],
            quantity=ln["quantity"],
            unit_price=Decimal(str(ln["unit_price"])),
        ))
    return out


def create_customer_order(
    db: Session,
    *,
    customer_id: str,
    required_date: datetime,
    lines: list[dict],
    notes: str | None = None,
    actor: str,
) -> CustomerOrder:
    get_or_404(db, Customer, customer_id, "Customer")
    order = CustomerOrder(
        order_number=next_yearly_number(db, CustomerOrder, "order_number", "CO"),
        customer_id=customer_id,
        order_date=datetime.utcnow(),
        required_date=required_date,
        status="PENDING",
        notes=notes,
        created_by=actor,
    )
    order.lines = _build_lines(db, lines)
    order.total_amount = lines_total(order.lines)
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created customer order %s", order.order_number)
    return order


def update_customer_order(db: Session, order_id: str, updates: dict, *, actor: str) -> CustomerOrder:
    order = (
        db.query(CustomerOrder).filter(CustomerOrder.id == order_id).with_for_update().first()
    )
    if order is None:
        raise NotFoundError("Customer order not found")
    lines = updates.pop("lines", None)
    apply_updates(order, updates, actor=actor)
    if lines is not None:
        order.lines = _build_lines(db, lines)
        order.total_amount = lines_total(order.lines)
    commit_or_conflict(db, "Customer order update")
    db.refresh(order)
    return order


def delete_customer_order(db: Session, order_id: str) -> None:
    order = get_or_404(db, CustomerOrder, order_id, "Customer order")
    reject_if_referenced(db, ProductionOrder, ProductionOrder.customer_order_id, order_id,
                         "Cannot delete customer order linked to production orders")
    db.delete(order)
    db.commit()
