from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.errors import ConflictError
from app.db.models.catalog import Category
from app.db.models.materials import Material
from app.db.models.production import ProductionOrder
from app.db.models.products import BOMEntry, Product
from services._crud import apply_updates, commit_refresh, get_or_404, reject_if_referenced


def ensure_category_deletable(db: Session, category_id: str) -> None:
    reject_if_referenced(db, Product, Product.category_id, category_id,
                         "Cannot delete category with associated products")


def ensure_product_deletable(db: Session, product_id: str) -> None:
    reject_if_referenced(db, BOMEntry, BOMEntry.product_id, product_id,
                         "Cannot delete product with associated BOM entries")
    reject_if_referenced(db, ProductionOrder, ProductionOrder.product_id, product_id,
                         "Cannot delete product with associated production orders")


def delete_category(db: Session, category_id: str) -> None:
    row = get_or_404(db, Category, category_id, "Category")
    ensure_category_deletable(db, category_id)
    db.delete(row)
    db.commit()


def delete_product(db: Session, product_id: str) -> None:
    row = get_or_404(db, Product, product_id, "Product")
    ensure_product_deletable(db, product_id)
    db.delete(row)
    db.commit()


# ---- BOM ----

def add_bom_entry(
    db: Session,
    product_id: str,
    *,
    material_id: str,
    quantity_needed: Decimal,
    waste_percentage: Decimal = Decimal("0"),
    actor: str,
) -> BOMEntry:
    get_or_404(db, Product, product_id, "Product")
    get_or_404(db, Material, material_id, "Material")
    exists = (
        db.query(BOMEntry.id)
        .filter(BOMEntry.product_id == product_id, BOMEntry.material_id == material_id)
        .first()
    )
    if exists is not None:
        raise ConflictError("Material is already in this product's BOM")
    entry = BOMEntry(
        product_id=product_id,
        material_id=material_id,
        quantity_needed=quantity_needed,
        waste_percentage=waste_percentage,
        created_by=actor,
    )
    return commit_refresh(db, entry)


def update_bom_entry(db: Session, entry_id: str, updates: dict, *, actor: str) -> BOMEntry:
    entry = get_or_404(db, BOMEntry, entry_id, "BOM entry")
    apply_updates(entry, updates, actor=actor)
    return commit_refresh(db, entry)


def delete_bom_entry(db: Session, entry_id: str) -> None:
    entry = get_or_404(db, BOMEntry, entry_id, "BOM entry")
    db.delete(entry)
    db.commit()
