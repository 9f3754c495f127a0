"""Keeps ``PurchaseOrder.total_amount`` equal to the sum of its lines."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.numeric import to_number
from app.db.models.purchasing import PurchaseOrder, PurchaseOrderLine
from app.events.bus import publish

logger = logging.getLogger(__name__)


def lines_total(lines) -> Decimal:
    total = sum((line.quantity * to_number(line.unit_price) for line in lines), 0.0)
    return Decimal(str(round(total, 2)))


def lock_purchase_order(db: Session, po_id: str) -> PurchaseOrder | None:
    """Load the order with a row lock held until the caller's transaction ends."""
    return db.query(PurchaseOrder).filter(PurchaseOrder.id == po_id).with_for_update().first()


def recompute_purchase_order_total(db: Session, po_id: str | None, *, commit: bool = True) -> bool:
    """Re-sum the order's lines and store the result as its total.

    Returns False (after logging) when the order cannot be found; callers
    treat that as non-fatal since the line change that triggered the
    recompute has already been applied. With ``commit=False`` the update
    joins the caller's transaction.
    """
    if not po_id:
        logger.warning("Skipping total recompute: line is not attached to a purchase order")
        return False
    po = lock_purchase_order(db, po_id)
    if po is None:
        logger.warning("Skipping total recompute: purchase order %s not found", po_id)
        return False

    db.flush()
    lines = db.query(PurchaseOrderLine).filter(PurchaseOrderLine.po_id == po_id).all()
    total = lines_total(lines)
    previous = po.total_amount
    po.total_amount = total
    po.updated_at = datetime.utcnow()
    if previous is None or Decimal(previous) != total:
        publish(db, "purchasing.po.total_recomputed", {
            "po_id": po.id,
            "po_number": po.po_number,
            "total_amount": total,
            "line_count": len(lines),
        })
    if commit:
        db.commit()
    logger.debug("Purchase order %s total -> %s over %d lines", po.po_number, total, len(lines))
    return True
