from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InUseError, InsufficientStockError, NotFoundError, ValidationError
from app.db.models.auth import User
from app.db.models.materials import Material
from app.db.models.production import Operation, ProductionOrder, QualityCheck, WorkCenter
from app.db.models.products import BOMEntry, Product
from app.db.models.sales import CustomerOrder
from app.events.bus import publish
from services._crud import apply_updates, commit_or_conflict, commit_refresh, get_or_404, reject_if_referenced
from services.materials.service import post_stock_movement, units_to_consume

logger = logging.getLogger(__name__)

LOCKED_OPERATION_STATUSES = ("IN_PROGRESS", "COMPLETED")


# ---- Production orders ----

def ensure_production_order_deletable(db: Session, order_id: str) -> None:
    has_ops = db.query(Operation.id).filter(Operation.production_order_id == order_id).first() is not None
    has_qc = db.query(QualityCheck.id).filter(QualityCheck.production_order_id == order_id).first() is not None
    if has_ops or has_qc:
        logger.info("Delete blocked for production order %s", order_id)
        raise InUseError("Cannot delete production order with associated operations or quality checks")


def _utc_naive(dt: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if dt is not None and dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _check_window(start, end, message: str) -> None:
    start, end = _utc_naive(start), _utc_naive(end)
    if start is not None and end is not None and end < start:
        raise ValidationError(message)


ORDER_REQUIRED_FIELDS = ("product_id", "quantity", "start_date", "due_date", "priority", "status")
# Consumption is booked from these, so they freeze once the order completes
COMPLETED_FROZEN_FIELDS = ("product_id", "quantity")


def _complete(db: Session, order: ProductionOrder, *, actor: str) -> None:
    drawn = consume_materials(db, order, actor=actor)
    publish(db, "production.order.completed", {
        "production_order_id": order.id,
        "product_id": order.product_id,
        "quantity": order.quantity,
        "materials": drawn,
    })
    logger.info("Production order %s completed, %d materials consumed", order.id, len(drawn))


def create_production_order(db: Session, data: dict, *, actor: str) -> ProductionOrder:
    get_or_404(db, Product, data["product_id"], "Product")
    if data.get("customer_order_id"):
        get_or_404(db, CustomerOrder, data["customer_order_id"], "Customer order")
    _check_window(data.get("start_date"), data.get("due_date"), "due_date must not be before start_date")
    order = ProductionOrder(**data, created_by=actor)
    if order.status != "COMPLETED":
        return commit_refresh(db, order)

    # Created already finished: book the consumption in the same transaction
    db.add(order)
    db.flush()
    try:
        _complete(db, order, actor=actor)
    except InsufficientStockError:
        db.rollback()
        raise
    commit_or_conflict(db, "Production order")
    db.refresh(order)
    return order


def consume_materials(db: Session, order: ProductionOrder, *, actor: str) -> list[dict]:
    """Draw every BOM material for ``order`` from stock. Does not commit.

    All entries are checked before any stock moves, so a shortage on one
    material leaves every balance untouched.
    """
    entries = (
        db.query(BOMEntry)
        .filter(BOMEntry.product_id == order.product_id)
        .order_by(BOMEntry.material_id)
        .all()
    )
    plan: list[tuple[Material, int]] = []
    for entry in entries:
        material = db.query(Material).filter(Material.id == entry.material_id).with_for_update().one()
        plan.append((material, units_to_consume(order.quantity, entry.quantity_needed, entry.waste_percentage)))

    short = [f"{m.sku} (have {m.current_stock}, need {units})" for m, units in plan if m.current_stock < units]
    if short:
        raise InsufficientStockError("Insufficient stock to complete production order: " + ", ".join(short))

    drawn = []
    for material, units in plan:
        if units == 0:
            continue
        post_stock_movement(
            db,
            material,
            -units,
            txn_type="CONSUMPTION",
            actor=actor,
            reason="Production order completed",
            reference_type="PRODUCTION_ORDER",
            reference_id=order.id,
        )
        drawn.append({"material_id": material.id, "quantity": units})
    return drawn


def update_production_order(db: Session, order_id: str, updates: dict, *, actor: str) -> ProductionOrder:
    missing = sorted(k for k in ORDER_REQUIRED_FIELDS if k in updates and updates[k] is None)
    if missing:
        raise ValidationError(f"{', '.join(missing)} may not be null")
    order = (
        db.query(ProductionOrder).filter(ProductionOrder.id == order_id).with_for_update().first()
    )
    if order is None:
        raise NotFoundError("Production order not found")
    if order.status == "COMPLETED":
        if updates.get("status", "COMPLETED") != "COMPLETED":
            raise ConflictError("Completed production orders cannot be reopened")
        frozen = [k for k in COMPLETED_FROZEN_FIELDS if k in updates and updates[k] != getattr(order, k)]
        if frozen:
            raise ConflictError(f"Cannot change {', '.join(frozen)} of a completed production order")
    if updates.get("product_id"):
        get_or_404(db, Product, updates["product_id"], "Product")
    if updates.get("customer_order_id"):
        get_or_404(db, CustomerOrder, updates["customer_order_id"], "Customer order")
    _check_window(updates.get("start_date", order.start_date), updates.get("due_date", order.due_date),
                  "due_date must not be before start_date")

    completing = updates.get("status") == "COMPLETED" and order.status != "COMPLETED"
    apply_updates(order, updates, actor=actor)
    if completing:
        _complete(db, order, actor=actor)
    commit_or_conflict(db, "Production order update")
    db.refresh(order)
    return order


def delete_production_order(db: Session, order_id: str) -> None:
    order = get_or_404(db, ProductionOrder, order_id, "Production order")
    ensure_production_order_deletable(db, order_id)
    db.delete(order)
    db.commit()


def link_customer_order(db: Session, order_id: str, customer_order_id: str, *, actor: str) -> ProductionOrder:
    order = (
        db.query(ProductionOrder).filter(ProductionOrder.id == order_id).with_for_update().first()
    )
    if order is None:
        raise NotFoundError("Production order not found")
    if order.customer_order_id:
        raise ConflictError("Production order is already linked to a customer order")
    get_or_404(db, CustomerOrder, customer_order_id, "Customer order")
    order.customer_order_id = customer_order_id
    order.modified_by = actor
    db.commit()
    db.refresh(order)
    return order


# ---- Operations ----

def add_operation(db: Session, order_id: str, data: dict, *, actor: str) -> Operation:
    get_or_404(db, ProductionOrder, order_id, "Production order")
    get_or_404(db, WorkCenter, data["work_center_id"], "Work center")
    _check_window(data["start_time"], data["end_time"], "end_time must not be before start_time")
    return commit_refresh(db, Operation(production_order_id=order_id, **data, created_by=actor))


def update_operation(db: Session, operation_id: str, updates: dict, *, actor: str) -> Operation:
    op = get_or_404(db, Operation, operation_id, "Operation")
    if updates.get("work_center_id"):
        get_or_404(db, WorkCenter, updates["work_center_id"], "Work center")
    _check_window(updates.get("start_time", op.start_time), updates.get("end_time", op.end_time),
                  "end_time must not be before start_time")
    apply_updates(op, updates, actor=actor)
    return commit_refresh(db, op)


def delete_operation(db: Session, operation_id: str) -> None:
    op = get_or_404(db, Operation, operation_id, "Operation")
    if op.status in LOCKED_OPERATION_STATUSES:
        raise InUseError("Cannot delete an operation that is in progress or completed")
    db.delete(op)
    db.commit()


# ---- Work centers ----

def delete_work_center(db: Session, work_center_id: str) -> None:
    wc = get_or_404(db, WorkCenter, work_center_id, "Work center")
    reject_if_referenced(db, Operation, Operation.work_center_id, work_center_id,
                         "Cannot delete WorkCenter as it is linked to operations")
    db.delete(wc)
    db.commit()


# ---- Quality checks ----

def require_inspector(db: Session, user_id: str) -> User:
    user = get_or_404(db, User, user_id, "Inspector")
    if user.role != "INSPECTOR":
        raise ValidationError("Quality checks must be assigned to a user with role INSPECTOR")
    return user


def create_quality_check(db: Session, data: dict, *, actor: str) -> QualityCheck:
    get_or_404(db, ProductionOrder, data["production_order_id"], "Production order")
    require_inspector(db, data["inspector_id"])
    check = QualityCheck(**data, status="PENDING", created_by=actor)
    return commit_refresh(db, check)


def update_quality_check(db: Session, check_id: str, updates: dict, *, actor: str) -> QualityCheck:
    check = get_or_404(db, QualityCheck, check_id, "Quality check")
    if updates.get("inspector_id"):
        require_inspector(db, updates["inspector_id"])
    apply_updates(check, updates, actor=actor)
    return commit_refresh(db, check)


def delete_quality_check(db: Session, check_id: str) -> None:
    check = get_or_404(db, QualityCheck, check_id, "Quality check")
    db.delete(check)
    db.commit()
