from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, selectinload

from app.core.numeric import normalize_decimals
from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.catalog import Category
from app.db.models.products import BOMEntry, Product
from services._schemas import PatchModel
from services._crud import apply_updates, commit_refresh, get_or_404
from services.products import service

router = APIRouter(prefix="/products", tags=["products"])


# ---- Schemas ----
class ProductIn(BaseModel):
    sku: str = Field(..., max_length=64)
    name: str = Field(..., max_length=256)
    description: str | None = None
    category_id: str | None = None
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)
    current_stock: int = Field(default=0, ge=0)
    minimum_stock_level: int = Field(default=0, ge=0)
    status: str = "ACTIVE"


class ProductPatch(PatchModel):
    nullable = frozenset({"description", "category_id"})

    name: str | None = Field(default=None, max_length=256)
    description: str | None = None
    category_id: str | None = None
    selling_price: Decimal | None = Field(default=None, ge=0)
    current_stock: int | None = Field(default=None, ge=0)
    minimum_stock_level: int | None = Field(default=None, ge=0)
    status: str | None = None


class BOMEntryIn(BaseModel):
    material_id: str
    quantity_needed: Decimal = Field(..., ge=0)
    waste_percentage: Decimal = Field(default=Decimal("0"), ge=0)


class BOMEntryPatch(PatchModel):
    quantity_needed: Decimal | None = Field(default=None, ge=0)
    waste_percentage: Decimal | None = Field(default=None, ge=0)


def _product_out(p: Product) -> dict:
    return normalize_decimals({
        "id": p.id,
        "sku": p.sku,
        "name": p.name,
        "description": p.description,
        "category_id": p.category_id,
        "category_name": p.category.name if p.category else None,
        "selling_price": p.selling_price,
        "current_stock": p.current_stock,
        "minimum_stock_level": p.minimum_stock_level,
        "status": p.status,
    })


def _bom_out(e: BOMEntry) -> dict:
    return normalize_decimals({
        "id": e.id,
        "product_id": e.product_id,
        "material_id": e.material_id,
        "material_name": e.material.name if e.material else None,
        "quantity_needed": e.quantity_needed,
        "waste_percentage": e.waste_percentage,
    })


@router.get("")
def list_products(db: Session = Depends(get_db), status: str | None = None, limit: int = 200):
    q = db.query(Product).options(selectinload(Product.category))
    if status:
        q = q.filter(Product.status == status)
    return [_product_out(p) for p in q.order_by(Product.name).limit(limit).all()]


@router.get("/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    p = get_or_404(db, Product, product_id, "Product")
    return {**_product_out(p), "bom": [_bom_out(e) for e in p.bom_entries]}


@router.post("", status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    if payload.category_id:
        get_or_404(db, Category, payload.category_id, "Category")
    p = commit_refresh(db, Product(**payload.model_dump(), created_by=principal.username))
    return _product_out(p)


@router.patch("/{product_id}")
def update_product(product_id: str, payload: ProductPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    p = get_or_404(db, Product, product_id, "Product")
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("category_id"):
        get_or_404(db, Category, updates["category_id"], "Category")
    apply_updates(p, updates, actor=principal.username)
    return _product_out(commit_refresh(db, p))


@router.delete("/{product_id}")
def delete_product(product_id: str, db: Session = Depends(get_db)):
    service.delete_product(db, product_id)
    return {"ok": True}


# ---- BOM ----
@router.get("/{product_id}/bom")
def list_bom(product_id: str, db: Session = Depends(get_db)):
    p = get_or_404(db, Product, product_id, "Product")
    return [_bom_out(e) for e in p.bom_entries]


@router.post("/{product_id}/bom", status_code=201)
def add_bom_entry(product_id: str, payload: BOMEntryIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    e = service.add_bom_entry(db, product_id, **payload.model_dump(), actor=principal.username)
    return _bom_out(e)


@router.patch("/bom/{entry_id}")
def update_bom_entry(entry_id: str, payload: BOMEntryPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    e = service.update_bom_entry(db, entry_id, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _bom_out(e)


@router.delete("/bom/{entry_id}")
def delete_bom_entry(entry_id: str, db: Session = Depends(get_db)):
    service.delete_bom_entry(db, entry_id)
    return {"ok": True}
