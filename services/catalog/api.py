from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.catalog import Category, MaterialType, Supplier, UnitOfMeasure
from services._schemas import PatchModel
from services._crud import apply_updates, commit_refresh, get_or_404
from services.materials import service as materials_service
from services.products import service as products_service

router = APIRouter(prefix="/catalog", tags=["catalog"])


# ---- Schemas ----
class NamedIn(BaseModel):
    name: str = Field(..., max_length=128)
    description: str | None = None


class NamedPatch(PatchModel):
    nullable = frozenset({"description"})

    name: str | None = Field(default=None, max_length=128)
    description: str | None = None


class UnitIn(NamedIn):
    symbol: str = Field(..., max_length=16)


class UnitPatch(NamedPatch):
    symbol: str | None = Field(default=None, max_length=16)


class SupplierIn(BaseModel):
    code: str = Field(..., max_length=32)
    name: str = Field(..., max_length=256)
    contact_person: str | None = Field(default=None, max_length=128)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = None
    status: str = "ACTIVE"
    notes: str | None = None


class SupplierPatch(PatchModel):
    nullable = frozenset({"contact_person", "email", "phone", "address", "notes"})

    name: str | None = Field(default=None, max_length=256)
    contact_person: str | None = Field(default=None, max_length=128)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = None
    status: str | None = None
    notes: str | None = None


def _named_out(row) -> dict:
    out = {"id": row.id, "name": row.name, "description": row.description}
    if isinstance(row, UnitOfMeasure):
        out["symbol"] = row.symbol
    return out


def _supplier_out(s: Supplier) -> dict:
    return {
        "id": s.id,
        "code": s.code,
        "name": s.name,
        "contact_person": s.contact_person,
        "email": s.email,
        "phone": s.phone,
        "address": s.address,
        "status": s.status,
        "notes": s.notes,
    }


# ---- Material types ----
@router.get("/material-types")
def list_material_types(db: Session = Depends(get_db)):
    return [_named_out(t) for t in db.query(MaterialType).order_by(MaterialType.name).all()]


@router.post("/material-types", status_code=201)
def create_material_type(payload: NamedIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _named_out(commit_refresh(db, MaterialType(**payload.model_dump(), created_by=principal.username)))


@router.patch("/material-types/{type_id}")
def update_material_type(type_id: str, payload: NamedPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    t = get_or_404(db, MaterialType, type_id, "Material type")
    apply_updates(t, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _named_out(commit_refresh(db, t))


@router.delete("/material-types/{type_id}")
def delete_material_type(type_id: str, db: Session = Depends(get_db)):
    materials_service.delete_material_type(db, type_id)
    return {"ok": True}


# ---- Units of measure ----
@router.get("/units")
def list_units(db: Session = Depends(get_db)):
    return [_named_out(u) for u in db.query(UnitOfMeasure).order_by(UnitOfMeasure.name).all()]


@router.post("/units", status_code=201)
def create_unit(payload: UnitIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _named_out(commit_refresh(db, UnitOfMeasure(**payload.model_dump(), created_by=principal.username)))


@router.patch("/units/{unit_id}")
def update_unit(unit_id: str, payload: UnitPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    u = get_or_404(db, UnitOfMeasure, unit_id, "Unit of measure")
    apply_updates(u, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _named_out(commit_refresh(db, u))


@router.delete("/units/{unit_id}")
def delete_unit(unit_id: str, db: Session = Depends(get_db)):
    materials_service.delete_unit_of_measure(db, unit_id)
    return {"ok": True}


# ---- Categories ----
@router.get("/categories")
def list_categories(db: Session = Depends(get_db)):
    return [_named_out(c) for c in db.query(Category).order_by(Category.name).all()]


@router.post("/categories", status_code=201)
def create_category(payload: NamedIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _named_out(commit_refresh(db, Category(**payload.model_dump(), created_by=principal.username)))


@router.patch("/categories/{category_id}")
def update_category(category_id: str, payload: NamedPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    c = get_or_404(db, Category, category_id, "Category")
    apply_updates(c, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _named_out(commit_refresh(db, c))


@router.delete("/categories/{category_id}")
def delete_category(category_id: str, db: Session = Depends(get_db)):
    products_service.delete_category(db, category_id)
    return {"ok": True}


# ---- Suppliers ----
@router.get("/suppliers")
def list_suppliers(db: Session = Depends(get_db), status: str | None = None):
    q = db.query(Supplier)
    if status:
        q = q.filter(Supplier.status == status)
    return [_supplier_out(s) for s in q.order_by(Supplier.name).all()]


@router.get("/suppliers/{supplier_id}")
def get_supplier(supplier_id: str, db: Session = Depends(get_db)):
    return _supplier_out(get_or_404(db, Supplier, supplier_id, "Supplier"))


@router.post("/suppliers", status_code=201)
def create_supplier(payload: SupplierIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _supplier_out(commit_refresh(db, Supplier(**payload.model_dump(), created_by=principal.username)))


@router.patch("/suppliers/{supplier_id}")
def update_supplier(supplier_id: str, payload: SupplierPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    s = get_or_404(db, Supplier, supplier_id, "Supplier")
    apply_updates(s, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _supplier_out(commit_refresh(db, s))


@router.delete("/suppliers/{supplier_id}")
def delete_supplier(supplier_id: str, db: Session = Depends(get_db)):
    materials_service.delete_supplier(db, supplier_id)
    return {"ok": True}
