from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session, selectinload

from app.core.numeric import normalize_decimals
from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.sales import Customer, CustomerOrder
from services._schemas import PatchModel
from services._crud import apply_updates, commit_refresh, get_or_404
from services.sales import service

router = APIRouter(prefix="/sales", tags=["sales"])


# ---- Schemas ----
class CustomerIn(BaseModel):
    name: str = Field(..., max_length=256)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = None
    status: str = "ACTIVE"
    notes: str | None = None


class CustomerPatch(PatchModel):
    nullable = frozenset({"email", "phone", "address", "notes"})

    name: str | None = Field(default=None, max_length=256)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = None
    status: str | None = None
    notes: str | None = None


class OrderLineIn(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)


class CustomerOrderIn(BaseModel):
    customer_id: str
    required_date: datetime
    notes: str | None = None
    lines: list[OrderLineIn] = Field(..., min_length=1)


class CustomerOrderPatch(PatchModel):
    nullable = frozenset({"notes"})

    required_date: datetime | None = None
    status: str | None = Field(default=None, pattern="^(PENDING|IN_PROGRESS|ACTIVE|COMPLETED|CANCELLED)$")
    notes: str | None = None
    lines: list[OrderLineIn] | None = None


def _customer_out(c: Customer) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "email": c.email,
        "phone": c.phone,
        "address": c.address,
        "status": c.status,
        "notes": c.notes,
    }


def _order_out(o: CustomerOrder, with_lines: bool = True) -> dict:
    out = {
        "id": o.id,
        "order_number": o.order_number,
        "customer_id": o.customer_id,
        "customer_name": o.customer.name if o.customer else None,
        "order_date": o.order_date,
        "required_date": o.required_date,
        "total_amount": o.total_amount,
        "status": o.status,
        "notes": o.notes,
    }
    if with_lines:
        out["lines"] = [
            {"id": ln.id, "product_id": ln.product_id, "quantity": ln.quantity, "unit_price": ln.unit_price, "status": ln.status}
            for ln in o.lines
        ]
    return normalize_decimals(out)


# ---- Customers ----
@router.get("/customers")
def list_customers(db: Session = Depends(get_db), limit: int = 200):
    return [_customer_out(c) for c in db.query(Customer).order_by(Customer.name).limit(limit).all()]


@router.get("/customers/{customer_id}")
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    return _customer_out(get_or_404(db, Customer, customer_id, "Customer"))


@router.post("/customers", status_code=201)
def create_customer(payload: CustomerIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _customer_out(commit_refresh(db, Customer(**payload.model_dump(), created_by=principal.username)))


@router.patch("/customers/{customer_id}")
def update_customer(customer_id: str, payload: CustomerPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    c = get_or_404(db, Customer, customer_id, "Customer")
    apply_updates(c, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _customer_out(commit_refresh(db, c))


@router.delete("/customers/{customer_id}")
def delete_customer(customer_id: str, db: Session = Depends(get_db)):
    service.delete_customer(db, customer_id)
    return {"ok": True}


# ---- Customer orders ----
@router.get("/orders")
def list_orders(db: Session = Depends(get_db), status: str | None = None, limit: int = 200):
    q = db.query(CustomerOrder).options(selectinload(CustomerOrder.customer))
    if status:
        q = q.filter(CustomerOrder.status == status)
    return [_order_out(o, with_lines=False) for o in q.order_by(CustomerOrder.order_date.desc()).limit(limit).all()]


@router.get("/orders/{order_id}")
def get_order(order_id: str, db: Session = Depends(get_db)):
    return _order_out(get_or_404(db, CustomerOrder, order_id, "Customer order"))


@router.post("/orders", status_code=201)
def create_order(payload: CustomerOrderIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    order = service.create_customer_order(
        db,
        customer_id=payload.customer_id,
        required_date=payload.required_date,
        lines=[ln.model_dump() for ln in payload.lines],
        notes=payload.notes,
        actor=principal.username,
    )
    return _order_out(order)


@router.patch("/orders/{order_id}")
def update_order(order_id: str, payload: CustomerOrderPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    order = service.update_customer_order(db, order_id, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _order_out(order)


@router.delete("/orders/{order_id}")
def delete_order(order_id: str, db: Session = Depends(get_db)):
    service.delete_customer_order(db, order_id)
    return {"ok": True}
