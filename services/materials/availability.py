"""Material availability against open production demand.

A material's committed quantity is what open production orders will pull
through the bills of materials that reference it::

    committed = sum over BOM entries E of
                open_qty(E.product) * E.quantity_needed * (1 + E.waste_percentage / 100)

Everything here is read-only; results are point-in-time snapshots and no
stock is held for the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core import config
from app.core.errors import NotFoundError, StorageError
from app.core.numeric import to_number, require_finite
from app.db.models.materials import Material
from app.db.models.products import BOMEntry
from app.db.models.production import ProductionOrder

logger = logging.getLogger(__name__)


@dataclass
class AvailabilityResult:
    material_id: str
    material_name: str
    unit_symbol: str
    current_stock: int
    committed_quantity: float
    available_stock: float
    required_quantity: float
    is_available: bool
    is_below_minimum: bool
    shortfall: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MaterialUsage:
    product_id: str
    product_name: str
    product_sku: str
    quantity_needed: float
    waste_percentage: float
    pending_production: int
    projected_usage: float

    def to_dict(self) -> dict:
        return asdict(self)


def open_statuses(statuses: Iterable[str] | None = None) -> tuple[str, ...]:
    return tuple(statuses) if statuses is not None else config.OPEN_PRODUCTION_STATUSES


def open_demand_by_product(db: Session, product_ids: Iterable[str], statuses: Iterable[str] | None = None) -> dict[str, int]:
    """Total quantity of open production orders per product."""
    ids = list(set(product_ids))
    if not ids:
        return {}
    rows = (
        db.query(ProductionOrder.product_id, func.coalesce(func.sum(ProductionOrder.quantity), 0))
        .filter(ProductionOrder.product_id.in_(ids), ProductionOrder.status.in_(open_statuses(statuses)))
        .group_by(ProductionOrder.product_id)
        .all()
    )
    return {product_id: int(qty) for product_id, qty in rows}


def line_commitment(pending_quantity: float, quantity_needed, waste_percentage) -> float:
    return pending_quantity * to_number(quantity_needed) * (1 + to_number(waste_percentage) / 100)


def compute_material_availability(
    db: Session,
    material_id: str,
    required_quantity: float,
    *,
    statuses: Iterable[str] | None = None,
) -> AvailabilityResult:
    """Check whether ``required_quantity`` can be drawn from uncommitted stock.

    Raises NotFoundError for an unknown material and ValidationError for a
    negative or non-finite quantity; database failures surface as StorageError.
    """
    required = require_finite(required_quantity, "required_quantity")

    try:
        material = (
            db.query(Material)
            .options(joinedload(Material.unit_of_measure))
            .filter(Material.id == material_id)
            .first()
        )
        if material is None:
            raise NotFoundError("Material not found")

        entries = db.query(BOMEntry).filter(BOMEntry.material_id == material_id).all()
        demand = open_demand_by_product(db, (e.product_id for e in entries), statuses)
    except SQLAlchemyError as e:
        logger.exception("Error checking material availability for %s", material_id)
        raise StorageError("Failed to check material availability") from e

    committed = 0.0
    for entry in entries:
        committed += line_commitment(demand.get(entry.product_id, 0), entry.quantity_needed, entry.waste_percentage)

    current_stock = material.current_stock
    available = current_stock - committed
    is_available = available >= required

    return AvailabilityResult(
        material_id=material.id,
        material_name=material.name,
        unit_symbol=material.unit_of_measure.symbol if material.unit_of_measure else "",
        current_stock=current_stock,
        committed_quantity=committed,
        available_stock=available,
        required_quantity=required,
        is_available=is_available,
        is_below_minimum=available < material.minimum_stock_level,
        shortfall=0.0 if is_available else required - available,
    )


def get_material_usage(
    db: Session,
    material_id: str,
    *,
    statuses: Iterable[str] | None = None,
) -> list[MaterialUsage]:
    """Projected consumption of a material per product that uses it."""
    try:
        if db.get(Material, material_id) is None:
            raise NotFoundError("Material not found")
        entries = (
            db.query(BOMEntry)
            .options(joinedload(BOMEntry.product))
            .filter(BOMEntry.material_id == material_id)
            .all()
        )
        demand = open_demand_by_product(db, (e.product_id for e in entries), statuses)
    except SQLAlchemyError as e:
        logger.exception("Error getting usage for material %s", material_id)
        raise StorageError("Failed to get material usage information") from e

    usage: list[MaterialUsage] = []
    for entry in entries:
        pending = demand.get(entry.product_id, 0)
        usage.append(
            MaterialUsage(
                product_id=entry.product_id,
                product_name=entry.product.name,
                product_sku=entry.product.sku,
                quantity_needed=to_number(entry.quantity_needed),
                waste_percentage=to_number(entry.waste_percentage),
                pending_production=pending,
                projected_usage=round(line_commitment(pending, entry.quantity_needed, entry.waste_percentage), 2),
            )
        )
    return usage
