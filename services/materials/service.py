from __future__ import annotations

import logging
import math

from sqlalchemy.orm import Session

from app.core.errors import InsufficientStockError, NotFoundError, ValidationError
from app.db.models.catalog import MaterialType, UnitOfMeasure, Supplier
from app.db.models.inventory import InventoryTransaction
from app.db.models.materials import Material
from app.db.models.products import BOMEntry
from app.db.models.purchasing import PurchaseOrder
from app.events.bus import publish
from services._crud import get_or_404, reject_if_referenced
from services.materials.availability import line_commitment

logger = logging.getLogger(__name__)


# ---- Lifecycle guards ----

def ensure_material_deletable(db: Session, material_id: str) -> None:
    reject_if_referenced(db, BOMEntry, BOMEntry.material_id, material_id,
                         "Cannot delete material as it is being used in BOMs")


def ensure_material_type_deletable(db: Session, type_id: str) -> None:
    reject_if_referenced(db, Material, Material.type_id, type_id,
                         "Cannot delete material type as it is being used by materials")


def ensure_unit_of_measure_deletable(db: Session, unit_id: str) -> None:
    reject_if_referenced(db, Material, Material.unit_of_measure_id, unit_id,
                         "Cannot delete unit of measure as it is being used by materials")


def ensure_supplier_deletable(db: Session, supplier_id: str) -> None:
    reject_if_referenced(db, Material, Material.supplier_id, supplier_id,
                         "Cannot delete supplier as it is linked to materials")
    reject_if_referenced(db, PurchaseOrder, PurchaseOrder.supplier_id, supplier_id,
                         "Cannot delete supplier with associated purchase orders")


def delete_material(db: Session, material_id: str) -> None:
    material = get_or_404(db, Material, material_id, "Material")
    ensure_material_deletable(db, material_id)
    db.delete(material)
    db.commit()


def delete_material_type(db: Session, type_id: str) -> None:
    row = get_or_404(db, MaterialType, type_id, "Material type")
    ensure_material_type_deletable(db, type_id)
    db.delete(row)
    db.commit()


def delete_unit_of_measure(db: Session, unit_id: str) -> None:
    row = get_or_404(db, UnitOfMeasure, unit_id, "Unit of measure")
    ensure_unit_of_measure_deletable(db, unit_id)
    db.delete(row)
    db.commit()


def delete_supplier(db: Session, supplier_id: str) -> None:
    row = get_or_404(db, Supplier, supplier_id, "Supplier")
    ensure_supplier_deletable(db, supplier_id)
    db.delete(row)
    db.commit()


# ---- Stock movements ----

def post_stock_movement(
    db: Session,
    material: Material,
    delta: int,
    *,
    txn_type: str,
    actor: str,
    reason: str | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
) -> InventoryTransaction:
    """Change a material's stock by ``delta`` and record it. Does not commit."""
    new_balance = material.current_stock + delta
    if new_balance < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {material.sku}: have {material.current_stock}, need {-delta}"
        )
    material.current_stock = new_balance
    material.modified_by = actor
    txn = InventoryTransaction(
        material_id=material.id,
        txn_type=txn_type,
        quantity=delta,
        balance_after=new_balance,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        actor=actor,
    )
    db.add(txn)
    publish(db, "inventory.stock.adjusted", {
        "material_id": material.id,
        "txn_type": txn_type,
        "quantity": delta,
        "balance_after": new_balance,
        "reference_id": reference_id,
    })
    logger.info("Stock %s %+d for material %s -> %d", txn_type, delta, material.sku, new_balance)
    return txn


def adjust_stock(db: Session, material_id: str, *, adjustment: str, quantity: int, reason: str, actor: str) -> InventoryTransaction:
    if adjustment not in ("add", "remove"):
        raise ValidationError("type must be 'add' or 'remove'")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    material = (
        db.query(Material).filter(Material.id == material_id).with_for_update().first()
    )
    if material is None:
        raise NotFoundError("Material not found")
    delta = quantity if adjustment == "add" else -quantity
    txn = post_stock_movement(db, material, delta, txn_type="ADJUSTMENT", actor=actor, reason=reason)
    db.commit()
    db.refresh(txn)
    return txn


def units_to_consume(order_quantity: int, quantity_needed, waste_percentage) -> int:
    """Whole material units drawn by a production order for one BOM entry."""
    # Round away float noise before ceiling so 22.000000000000004 draws 22
    return math.ceil(round(line_commitment(order_quantity, quantity_needed, waste_percentage), 6))
