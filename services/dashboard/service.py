"""Read-only dashboard aggregates.

Each function takes an optional ``now`` so callers can pin the reporting
window; by default it is the current UTC time. Windows are 30 days unless
noted otherwise.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import StorageError
from app.core.numeric import to_number
from app.db.models.materials import Material
from app.db.models.products import BOMEntry, Product
from app.db.models.production import ProductionOrder, QualityCheck
from app.db.models.purchasing import PurchaseOrder
from app.db.models.sales import CustomerOrder, CustomerOrderLine
from services.materials.availability import line_commitment

logger = logging.getLogger(__name__)

MONTH = timedelta(days=30)
QUARTER = timedelta(days=90)
WARNING_FACTOR = 1.2
ALERT_RANK = {"CRITICAL": 0, "WARNING": 1}
LATE_STATUSES = ("PENDING", "IN_PROGRESS")


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def material_alerts(db: Session, now: datetime | None = None) -> list[dict]:
    """Materials at or near their minimum, with a days-until-stockout estimate.

    Daily consumption is the BOM demand of the last month's customer order
    lines spread over 30 days. A material consumed by nothing has no
    estimate.
    """
    since = (now or datetime.utcnow()) - MONTH
    try:
        materials = (
            db.query(Material)
            .filter(Material.status == "ACTIVE",
                    Material.current_stock <= Material.minimum_stock_level * WARNING_FACTOR)
            .all()
        )
        ids = [m.id for m in materials]
        rows = []
        if ids:
            rows = (
                db.query(BOMEntry.material_id, BOMEntry.quantity_needed, func.sum(CustomerOrderLine.quantity))
                .join(CustomerOrderLine, CustomerOrderLine.product_id == BOMEntry.product_id)
                .join(CustomerOrder, CustomerOrder.id == CustomerOrderLine.customer_order_id)
                .filter(BOMEntry.material_id.in_(ids), CustomerOrder.order_date >= since)
                .group_by(BOMEntry.id, BOMEntry.material_id, BOMEntry.quantity_needed)
                .all()
            )
    except SQLAlchemyError as e:
        logger.exception("Error fetching material alerts")
        raise StorageError("Failed to fetch material alerts") from e

    monthly: dict[str, float] = {}
    for material_id, quantity_needed, ordered in rows:
        monthly[material_id] = monthly.get(material_id, 0.0) + to_number(quantity_needed) * int(ordered or 0)

    alerts = []
    for m in materials:
        daily = monthly.get(m.id, 0.0) / 30
        alerts.append({
            "id": m.id,
            "sku": m.sku,
            "name": m.name,
            "current_stock": m.current_stock,
            "minimum_stock_level": m.minimum_stock_level,
            "lead_time_days": m.lead_time_days,
            "days_until_stockout": math.floor(m.current_stock / daily) if daily > 0 else None,
            "status": "CRITICAL" if m.current_stock <= m.minimum_stock_level else "WARNING",
        })

    def rank(a: dict):
        days = a["days_until_stockout"]
        return ALERT_RANK[a["status"]], days is None, days if days is not None else 0

    return sorted(alerts, key=rank)


def production_status(db: Session) -> dict:
    try:
        counts = dict(
            db.query(ProductionOrder.status, func.count(ProductionOrder.id))
            .group_by(ProductionOrder.status)
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("Error fetching production status")
        raise StorageError("Failed to fetch production status") from e

    total = sum(counts.values())
    pending = counts.get("PENDING", 0)
    in_progress = counts.get("IN_PROGRESS", 0)
    completed = counts.get("COMPLETED", 0)
    return {
        "total": total,
        "pending": pending,
        "in_progress": in_progress,
        "completed": completed,
        "pending_percentage": _pct(pending, total),
        "in_progress_percentage": _pct(in_progress, total),
        "completed_percentage": _pct(completed, total),
    }


def material_utilization(db: Session, now: datetime | None = None) -> list[dict]:
    """Planned against actual usage over last month's completed production.

    Actual usage includes the BOM waste allowance; the difference is the
    wastage, and ``cost_impact`` prices it at the material's unit cost.
    Sorted by cost impact, largest first.
    """
    since = (now or datetime.utcnow()) - MONTH
    try:
        rows = (
            db.query(Material, BOMEntry.quantity_needed, BOMEntry.waste_percentage, func.sum(ProductionOrder.quantity))
            .join(BOMEntry, BOMEntry.material_id == Material.id)
            .join(ProductionOrder, ProductionOrder.product_id == BOMEntry.product_id)
            .filter(
                Material.status == "ACTIVE",
                ProductionOrder.status == "COMPLETED",
                ProductionOrder.created_at >= since,
            )
            .group_by(Material.id, BOMEntry.id, BOMEntry.quantity_needed, BOMEntry.waste_percentage)
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("Error fetching material utilization")
        raise StorageError("Failed to fetch material utilization") from e

    totals: dict[str, dict] = {}
    for material, quantity_needed, waste_percentage, produced in rows:
        produced = int(produced or 0)
        t = totals.setdefault(material.id, {"material": material, "planned": 0.0, "actual": 0.0})
        t["planned"] += produced * to_number(quantity_needed)
        t["actual"] += line_commitment(produced, quantity_needed, waste_percentage)

    out = []
    for t in totals.values():
        m = t["material"]
        wastage = t["actual"] - t["planned"]
        out.append({
            "id": m.id,
            "sku": m.sku,
            "name": m.name,
            "planned_usage": round(t["planned"], 2),
            "actual_usage": round(t["actual"], 2),
            "wastage": round(wastage, 2),
            "wastage_percentage": _pct(wastage, t["planned"]),
            "cost_impact": round(wastage * to_number(m.cost_per_unit), 2),
        })
    return sorted(out, key=lambda r: r["cost_impact"], reverse=True)


def quality_metrics(db: Session, now: datetime | None = None) -> dict:
    """Pass and fail rates over the last 90 days, plus the five most common defects."""
    since = (now or datetime.utcnow()) - QUARTER
    try:
        checks = db.query(QualityCheck).filter(QualityCheck.check_date >= since).all()
    except SQLAlchemyError as e:
        logger.exception("Error fetching quality metrics")
        raise StorageError("Failed to fetch quality metrics") from e

    total = len(checks)
    passed = sum(1 for c in checks if c.status == "COMPLETED" and not (c.defects_found or "").strip())
    defects = Counter(
        d.strip()
        for c in checks if c.defects_found
        for d in c.defects_found.split(",") if d.strip()
    )
    return {
        "total_checks": total,
        "pass_rate": _pct(passed, total),
        "fail_rate": _pct(total - passed, total),
        "top_defects": [
            {"defect": name, "count": count, "percentage": _pct(count, total)}
            for name, count in defects.most_common(5)
        ],
    }


def operational_alerts(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    try:
        low_products = (
            db.query(func.count(Product.id))
            .filter(Product.status == "ACTIVE",
                    Product.current_stock <= Product.minimum_stock_level * WARNING_FACTOR)
            .scalar()
        )
        low_materials = (
            db.query(func.count(Material.id))
            .filter(Material.status == "ACTIVE",
                    Material.current_stock <= Material.minimum_stock_level * WARNING_FACTOR)
            .scalar()
        )
        late_production = (
            db.query(func.count(ProductionOrder.id))
            .filter(ProductionOrder.due_date < now, ProductionOrder.status.in_(LATE_STATUSES))
            .scalar()
        )
        quality_issues = (
            db.query(func.count(QualityCheck.id))
            .filter(QualityCheck.check_date >= now - MONTH, QualityCheck.defects_found.isnot(None))
            .scalar()
        )
        late_deliveries = (
            db.query(func.count(CustomerOrder.id))
            .filter(CustomerOrder.required_date < now, CustomerOrder.status.in_(LATE_STATUSES))
            .scalar()
        )
        pending_approvals = (
            db.query(func.count(PurchaseOrder.id)).filter(PurchaseOrder.status == "PENDING").scalar()
        )
    except SQLAlchemyError as e:
        logger.exception("Error fetching operational alerts")
        raise StorageError("Failed to fetch operational alerts") from e

    return {
        "low_stock_products": low_products or 0,
        "low_stock_materials": low_materials or 0,
        "late_production_orders": late_production or 0,
        "quality_issues": quality_issues or 0,
        "late_deliveries": late_deliveries or 0,
        "pending_approvals": pending_approvals or 0,
    }
