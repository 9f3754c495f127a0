from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session, selectinload

from app.core.numeric import normalize_decimals
from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.purchasing import PurchaseOrder, PurchaseOrderLine
from services._schemas import PatchModel
from services._crud import get_or_404
from services.purchasing import service

router = APIRouter(prefix="/purchasing", tags=["purchasing"])


# ---- Schemas ----
def _two_places(v: Decimal | None) -> Decimal | None:
    if v is not None and v.as_tuple().exponent < -2:
        raise ValueError("unit_price must have at most 2 decimal places")
    return v


class LineIn(BaseModel):
    material_id: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=Decimal("0.01"))
    notes: str | None = None

    @field_validator("unit_price")
    @classmethod
    def check_price_precision(cls, v):
        return _two_places(v)


class PurchaseOrderIn(BaseModel):
    supplier_id: str
    expected_delivery: datetime | None = None
    notes: str | None = None
    lines: list[LineIn] = Field(..., min_length=1)


class PurchaseOrderPatch(PatchModel):
    nullable = frozenset({"expected_delivery", "notes"})

    expected_delivery: datetime | None = None
    status: str | None = Field(default=None, max_length=16)
    notes: str | None = None


class LineCreateIn(LineIn):
    po_id: str | None = None


class LinePatch(PatchModel):
    nullable = frozenset({"po_id", "notes"})

    po_id: str | None = None
    material_id: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    unit_price: Decimal | None = Field(default=None, ge=Decimal("0.01"))
    status: str | None = Field(default=None, max_length=16)
    notes: str | None = None

    @field_validator("unit_price")
    @classmethod
    def check_price_precision(cls, v):
        return _two_places(v)


def _line_out(ln: PurchaseOrderLine) -> dict:
    return normalize_decimals({
        "id": ln.id,
        "po_id": ln.po_id,
        "material_id": ln.material_id,
        "quantity": ln.quantity,
        "unit_price": ln.unit_price,
        "status": ln.status,
        "notes": ln.notes,
    })


def _po_out(po: PurchaseOrder, with_lines: bool = True) -> dict:
    out = {
        "id": po.id,
        "po_number": po.po_number,
        "supplier_id": po.supplier_id,
        "supplier_name": po.supplier.name if po.supplier else None,
        "order_date": po.order_date,
        "expected_delivery": po.expected_delivery,
        "total_amount": po.total_amount,
        "status": po.status,
        "notes": po.notes,
    }
    if with_lines:
        out["lines"] = [_line_out(ln) for ln in po.lines]
    return normalize_decimals(out)


# ---- Purchase orders ----
@router.get("/purchase-orders")
def list_purchase_orders(db: Session = Depends(get_db), status: str | None = None, limit: int = 200):
    q = db.query(PurchaseOrder).options(selectinload(PurchaseOrder.supplier))
    if status:
        q = q.filter(PurchaseOrder.status == status)
    return [_po_out(po, with_lines=False) for po in q.order_by(PurchaseOrder.order_date.desc()).limit(limit).all()]


@router.get("/purchase-orders/{po_id}")
def get_purchase_order(po_id: str, db: Session = Depends(get_db)):
    return _po_out(get_or_404(db, PurchaseOrder, po_id, "Purchase order"))


@router.post("/purchase-orders", status_code=201)
def create_purchase_order(payload: PurchaseOrderIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    po = service.create_purchase_order(
        db,
        supplier_id=payload.supplier_id,
        lines=[ln.model_dump() for ln in payload.lines],
        expected_delivery=payload.expected_delivery,
        notes=payload.notes,
        actor=principal.username,
    )
    return _po_out(po)


@router.patch("/purchase-orders/{po_id}")
def update_purchase_order(po_id: str, payload: PurchaseOrderPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    po = service.update_purchase_order(db, po_id, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _po_out(po)


@router.delete("/purchase-orders/{po_id}")
def delete_purchase_order(po_id: str, db: Session = Depends(get_db)):
    service.delete_purchase_order(db, po_id)
    return {"ok": True}


# ---- Lines ----
@router.get("/lines/{line_id}")
def get_line(line_id: str, db: Session = Depends(get_db)):
    return _line_out(get_or_404(db, PurchaseOrderLine, line_id, "Purchase order line"))


@router.post("/lines", status_code=201)
def add_line(payload: LineCreateIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    line, recomputed = service.add_line(db, **payload.model_dump(), actor=principal.username)
    return {**_line_out(line), "total_recomputed": recomputed}


@router.patch("/lines/{line_id}")
def update_line(line_id: str, payload: LinePatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    line, recomputed = service.update_line(db, line_id, payload.model_dump(exclude_unset=True), actor=principal.username)
    return {**_line_out(line), "total_recomputed": recomputed}


@router.delete("/lines/{line_id}")
def delete_line(line_id: str, db: Session = Depends(get_db)):
    recomputed = service.delete_line(db, line_id)
    return {"ok": True, "total_recomputed": recomputed}


@router.post("/lines/{line_id}/receive")
def receive_line(line_id: str, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _line_out(service.receive_line(db, line_id, actor=principal.username))
