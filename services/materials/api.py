from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.core.numeric import normalize_decimals
from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.catalog import MaterialType, UnitOfMeasure, Supplier
from app.db.models.inventory import InventoryTransaction
from app.db.models.materials import Material
from services._schemas import PatchModel
from services._crud import apply_updates, commit_refresh, get_or_404
from services.materials import service
from services.materials.availability import compute_material_availability, get_material_usage

router = APIRouter(prefix="/materials", tags=["materials"])


# ---- Schemas ----
class MaterialIn(BaseModel):
    sku: str = Field(..., max_length=64)
    name: str = Field(..., max_length=256)
    type_id: str
    unit_of_measure_id: str
    supplier_id: str | None = None
    cost_per_unit: Decimal = Field(..., ge=0)
    current_stock: int = Field(default=0, ge=0)
    minimum_stock_level: int = Field(default=0, ge=0)
    lead_time_days: int = Field(default=0, ge=0)
    status: str = "ACTIVE"
    notes: str | None = None


class MaterialPatch(PatchModel):
    nullable = frozenset({"supplier_id", "notes"})

    name: str | None = Field(default=None, max_length=256)
    type_id: str | None = None
    unit_of_measure_id: str | None = None
    supplier_id: str | None = None
    cost_per_unit: Decimal | None = Field(default=None, ge=0)
    minimum_stock_level: int | None = Field(default=None, ge=0)
    lead_time_days: int | None = Field(default=None, ge=0)
    status: str | None = None
    notes: str | None = None


class StockAdjustIn(BaseModel):
    type: str = Field(..., pattern="^(add|remove)$")
    quantity: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=256)


def _material_out(m: Material) -> dict:
    return normalize_decimals({
        "id": m.id,
        "sku": m.sku,
        "name": m.name,
        "type_id": m.type_id,
        "type_name": m.type.name if m.type else None,
        "unit_of_measure_id": m.unit_of_measure_id,
        "unit_symbol": m.unit_of_measure.symbol if m.unit_of_measure else None,
        "supplier_id": m.supplier_id,
        "cost_per_unit": m.cost_per_unit,
        "current_stock": m.current_stock,
        "minimum_stock_level": m.minimum_stock_level,
        "lead_time_days": m.lead_time_days,
        "status": m.status,
        "notes": m.notes,
    })


def _check_refs(db: Session, data: dict) -> None:
    if data.get("type_id"):
        get_or_404(db, MaterialType, data["type_id"], "Material type")
    if data.get("unit_of_measure_id"):
        get_or_404(db, UnitOfMeasure, data["unit_of_measure_id"], "Unit of measure")
    if data.get("supplier_id"):
        get_or_404(db, Supplier, data["supplier_id"], "Supplier")


@router.get("")
def list_materials(db: Session = Depends(get_db), q: str | None = None, status: str | None = None, limit: int = 200):
    query = db.query(Material).options(selectinload(Material.type), selectinload(Material.unit_of_measure))
    if q:
        # Search matches name or SKU among active materials only
        like = f"%{q}%"
        query = query.filter(Material.status == "ACTIVE", or_(Material.name.ilike(like), Material.sku.ilike(like)))
        limit = min(limit, 50)
    elif status:
        query = query.filter(Material.status == status)
    return [_material_out(m) for m in query.order_by(Material.name).limit(limit).all()]


@router.get("/alerts/low-stock")
def low_stock(db: Session = Depends(get_db)):
    rows = (
        db.query(Material)
        .filter(Material.status == "ACTIVE", Material.current_stock < Material.minimum_stock_level)
        .order_by(Material.name)
        .all()
    )
    return [
        {**_material_out(m), "shortfall": m.minimum_stock_level - m.current_stock}
        for m in rows
    ]


@router.get("/{material_id}")
def get_material(material_id: str, db: Session = Depends(get_db)):
    return _material_out(get_or_404(db, Material, material_id, "Material"))


@router.post("", status_code=201)
def create_material(payload: MaterialIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    data = payload.model_dump()
    _check_refs(db, data)
    m = commit_refresh(db, Material(**data, created_by=principal.username))
    return _material_out(m)


@router.patch("/{material_id}")
def update_material(material_id: str, payload: MaterialPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    m = get_or_404(db, Material, material_id, "Material")
    updates = payload.model_dump(exclude_unset=True)
    _check_refs(db, updates)
    apply_updates(m, updates, actor=principal.username)
    return _material_out(commit_refresh(db, m))


@router.delete("/{material_id}")
def delete_material(material_id: str, db: Session = Depends(get_db)):
    service.delete_material(db, material_id)
    return {"ok": True}


@router.get("/{material_id}/availability")
def material_availability(material_id: str, required_quantity: float = Query(..., ge=0), db: Session = Depends(get_db)):
    result = compute_material_availability(db, material_id, required_quantity)
    return normalize_decimals(result.to_dict())


@router.get("/{material_id}/usage")
def material_usage(material_id: str, db: Session = Depends(get_db)):
    usage = get_material_usage(db, material_id)
    return [normalize_decimals(u.to_dict()) for u in usage]


@router.get("/{material_id}/transactions")
def material_transactions(material_id: str, db: Session = Depends(get_db), limit: int = Query(100, ge=1, le=500)):
    get_or_404(db, Material, material_id, "Material")
    rows = (
        db.query(InventoryTransaction)
        .filter(InventoryTransaction.material_id == material_id)
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": t.id,
            "txn_type": t.txn_type,
            "quantity": t.quantity,
            "balance_after": t.balance_after,
            "reason": t.reason,
            "reference_type": t.reference_type,
            "reference_id": t.reference_id,
            "actor": t.actor,
            "created_at": t.created_at,
        }
        for t in rows
    ]


@router.post("/{material_id}/adjust-stock")
def adjust_stock(material_id: str, payload: StockAdjustIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    txn = service.adjust_stock(
        db,
        material_id,
        adjustment=payload.type,
        quantity=payload.quantity,
        reason=payload.reason,
        actor=principal.username,
    )
    return {
        "transaction_id": txn.id,
        "material_id": txn.material_id,
        "quantity": txn.quantity,
        "current_stock": txn.balance_after,
    }
