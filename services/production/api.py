from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, selectinload

from app.core.numeric import normalize_decimals
from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.production import Operation, ProductionOrder
from services._schemas import PatchModel
from services._crud import get_or_404
from services.production import service

router = APIRouter(prefix="/production", tags=["production"])

ORDER_STATUSES = "^(PENDING|IN_PROGRESS|ACTIVE|COMPLETED|CANCELLED)$"


# ---- Schemas ----
class ProductionOrderIn(BaseModel):
    product_id: str
    customer_order_id: str | None = None
    quantity: int = Field(..., ge=1)
    start_date: datetime
    due_date: datetime
    priority: int = Field(default=1, ge=1)
    status: str = Field(default="PENDING", pattern=ORDER_STATUSES)
    notes: str | None = None


class ProductionOrderPatch(PatchModel):
    nullable = frozenset({"notes"})

    product_id: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    start_date: datetime | None = None
    due_date: datetime | None = None
    priority: int | None = Field(default=None, ge=1)
    status: str | None = Field(default=None, pattern=ORDER_STATUSES)
    notes: str | None = None


class LinkCustomerOrderIn(BaseModel):
    customer_order_id: str


class OperationIn(BaseModel):
    work_center_id: str
    start_time: datetime
    end_time: datetime
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    status: str = Field(default="PENDING", pattern="^(PENDING|IN_PROGRESS|COMPLETED|CANCELLED)$")
    notes: str | None = None


class OperationPatch(PatchModel):
    nullable = frozenset({"notes"})

    work_center_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    cost: Decimal | None = Field(default=None, ge=0)
    status: str | None = Field(default=None, pattern="^(PENDING|IN_PROGRESS|COMPLETED|CANCELLED)$")
    notes: str | None = None


def _operation_out(op: Operation) -> dict:
    return normalize_decimals({
        "id": op.id,
        "production_order_id": op.production_order_id,
        "work_center_id": op.work_center_id,
        "start_time": op.start_time,
        "end_time": op.end_time,
        "cost": op.cost,
        "status": op.status,
        "notes": op.notes,
    })


def _order_out(o: ProductionOrder, detail: bool = False) -> dict:
    out = {
        "id": o.id,
        "product_id": o.product_id,
        "product_name": o.product.name if o.product else None,
        "customer_order_id": o.customer_order_id,
        "quantity": o.quantity,
        "start_date": o.start_date,
        "due_date": o.due_date,
        "priority": o.priority,
        "status": o.status,
        "notes": o.notes,
    }
    if detail:
        out["operations"] = [_operation_out(op) for op in o.operations]
        out["quality_checks"] = [{"id": qc.id, "status": qc.status} for qc in o.quality_checks]
    return normalize_decimals(out)


# ---- Orders ----
@router.get("/orders")
def list_orders(db: Session = Depends(get_db), status: str | None = None, limit: int = 200):
    q = db.query(ProductionOrder).options(selectinload(ProductionOrder.product))
    if status:
        q = q.filter(ProductionOrder.status == status)
    return [_order_out(o) for o in q.order_by(ProductionOrder.due_date).limit(limit).all()]


@router.get("/orders/{order_id}")
def get_order(order_id: str, db: Session = Depends(get_db)):
    return _order_out(get_or_404(db, ProductionOrder, order_id, "Production order"), detail=True)


@router.post("/orders", status_code=201)
def create_order(payload: ProductionOrderIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _order_out(service.create_production_order(db, payload.model_dump(), actor=principal.username))


@router.patch("/orders/{order_id}")
def update_order(order_id: str, payload: ProductionOrderPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    order = service.update_production_order(db, order_id, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _order_out(order)


@router.delete("/orders/{order_id}")
def delete_order(order_id: str, db: Session = Depends(get_db)):
    service.delete_production_order(db, order_id)
    return {"ok": True}


@router.post("/orders/{order_id}/link-customer-order")
def link_customer_order(order_id: str, payload: LinkCustomerOrderIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    order = service.link_customer_order(db, order_id, payload.customer_order_id, actor=principal.username)
    return _order_out(order)


# ---- Operations ----
@router.post("/orders/{order_id}/operations", status_code=201)
def add_operation(order_id: str, payload: OperationIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _operation_out(service.add_operation(db, order_id, payload.model_dump(), actor=principal.username))


@router.patch("/operations/{operation_id}")
def update_operation(operation_id: str, payload: OperationPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    op = service.update_operation(db, operation_id, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _operation_out(op)


@router.delete("/operations/{operation_id}")
def delete_operation(operation_id: str, db: Session = Depends(get_db)):
    service.delete_operation(db, operation_id)
    return {"ok": True}
