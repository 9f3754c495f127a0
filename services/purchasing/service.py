from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InUseError, NotFoundError, ValidationError
from app.db.models.catalog import Supplier
from app.db.models.materials import Material
from app.db.models.purchasing import PurchaseOrder, PurchaseOrderLine
from services._crud import apply_updates, commit_or_conflict, get_or_404
from services._numbering import next_yearly_number
from services.materials.service import post_stock_movement
from services.purchasing.aggregator import recompute_purchase_order_total, lines_total, lock_purchase_order

logger = logging.getLogger(__name__)


def create_purchase_order(
    db: Session,
    *,
    supplier_id: str,
    lines: list[dict],
    expected_delivery: datetime | None = None,
    notes: str | None = None,
    actor: str,
) -> PurchaseOrder:
    get_or_404(db, Supplier, supplier_id, "Supplier")
    for ln in lines:
        get_or_404(db, Material, ln["material_id"], "Material")

    po = PurchaseOrder(
        po_number=next_yearly_number(db, PurchaseOrder, "po_number", "PO"),
        supplier_id=supplier_id,
        order_date=datetime.utcnow(),
        expected_delivery=expected_delivery,
        status="PENDING",
        notes=notes,
        created_by=actor,
    )
    po.lines = [
        PurchaseOrderLine(
            material_id=ln["material_id"],
            quantity=ln["quantity"],
            unit_price=Decimal(str(ln["unit_price"])),
            notes=ln.get("notes"),
            status="PENDING",
            created_by=actor,
        )
        for ln in lines
    ]
    po.total_amount = lines_total(po.lines)
    db.add(po)
    db.commit()
    db.refresh(po)
    logger.info("Created purchase order %s with %d lines", po.po_number, len(po.lines))
    return po


def update_purchase_order(db: Session, po_id: str, updates: dict, *, actor: str) -> PurchaseOrder:
    po = get_or_404(db, PurchaseOrder, po_id, "Purchase order")
    apply_updates(po, updates, actor=actor)
    commit_or_conflict(db, "Purchase order update")
    db.refresh(po)
    return po


def delete_purchase_order(db: Session, po_id: str) -> None:
    po = get_or_404(db, PurchaseOrder, po_id, "Purchase order")
    if db.query(PurchaseOrderLine.id).filter(PurchaseOrderLine.po_id == po_id).first() is not None:
        raise InUseError("Cannot delete purchase order with associated order lines")
    db.delete(po)
    db.commit()


# ---- Lines ----
# Each mutation locks the parent order, applies the change, re-sums the
# lines and commits once, so concurrent edits to one order serialize.

LINE_REQUIRED_FIELDS = ("material_id", "quantity", "unit_price", "status")


def add_line(
    db: Session,
    *,
    po_id: str | None,
    material_id: str,
    quantity: int,
    unit_price,
    notes: str | None = None,
    actor: str,
) -> tuple[PurchaseOrderLine, bool]:
    get_or_404(db, Material, material_id, "Material")
    if po_id is not None and lock_purchase_order(db, po_id) is None:
        raise NotFoundError("Purchase order not found")

    line = PurchaseOrderLine(
        po_id=po_id,
        material_id=material_id,
        quantity=quantity,
        unit_price=Decimal(str(unit_price)),
        notes=notes,
        status="PENDING",
        created_by=actor,
    )
    db.add(line)
    db.flush()
    recomputed = recompute_purchase_order_total(db, po_id, commit=False)
    commit_or_conflict(db, "Purchase order line")
    db.refresh(line)
    return line, recomputed


def update_line(db: Session, line_id: str, updates: dict, *, actor: str) -> tuple[PurchaseOrderLine, bool]:
    missing = sorted(k for k in LINE_REQUIRED_FIELDS if k in updates and updates[k] is None)
    if missing:
        raise ValidationError(f"{', '.join(missing)} may not be null")
    line = get_or_404(db, PurchaseOrderLine, line_id, "Purchase order line")
    old_po_id = line.po_id
    if old_po_id:
        lock_purchase_order(db, old_po_id)

    if "material_id" in updates:
        get_or_404(db, Material, updates["material_id"], "Material")
    if "unit_price" in updates:
        updates = {**updates, "unit_price": Decimal(str(updates["unit_price"]))}
    new_po_id = updates.get("po_id", old_po_id)
    if new_po_id != old_po_id and new_po_id is not None and lock_purchase_order(db, new_po_id) is None:
        raise NotFoundError("Purchase order not found")

    apply_updates(line, updates, actor=actor)
    db.flush()

    recomputed = recompute_purchase_order_total(db, new_po_id, commit=False)
    if old_po_id and old_po_id != new_po_id:
        recompute_purchase_order_total(db, old_po_id, commit=False)
    commit_or_conflict(db, "Purchase order line update")
    db.refresh(line)
    return line, recomputed


def delete_line(db: Session, line_id: str) -> bool:
    line = get_or_404(db, PurchaseOrderLine, line_id, "Purchase order line")
    po_id = line.po_id
    if po_id:
        lock_purchase_order(db, po_id)
    db.delete(line)
    db.flush()
    recomputed = recompute_purchase_order_total(db, po_id, commit=False)
    db.commit()
    return recomputed


def receive_line(db: Session, line_id: str, *, actor: str) -> PurchaseOrderLine:
    """Book a line's quantity into material stock."""
    line = (
        db.query(PurchaseOrderLine).filter(PurchaseOrderLine.id == line_id).with_for_update().first()
    )
    if line is None:
        raise NotFoundError("Purchase order line not found")
    if line.status == "COMPLETED":
        raise ConflictError("Purchase order line already received")
    material = db.query(Material).filter(Material.id == line.material_id).with_for_update().one()

    post_stock_movement(
        db,
        material,
        line.quantity,
        txn_type="RECEIPT",
        actor=actor,
        reason="Purchase receipt",
        reference_type="PURCHASE_ORDER_LINE",
        reference_id=line.id,
    )
    line.status = "COMPLETED"
    line.modified_by = actor
    db.commit()
    db.refresh(line)
    return line
