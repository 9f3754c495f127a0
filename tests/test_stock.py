"""
Manual stock adjustments and production completion consumption.
"""
from datetime import datetime

import pytest

from app.core.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from app.db.models.inventory import InventoryTransaction
from app.db.models.production import ProductionOrder
from app.db.models.sales import Customer
from app.events.outbox import OutboxEvent
from services.materials.service import adjust_stock, units_to_consume
from services.production import service as production
from services.sales import service as sales


def test_adjust_add_and_remove(db, make):
    material = make.material(current_stock=10)
    adjust_stock(db, material.id, adjustment="add", quantity=5, reason="count", actor="t")
    txn = adjust_stock(db, material.id, adjustment="remove", quantity=12, reason="scrap", actor="t")

    db.refresh(material)
    assert material.current_stock == 3
    assert txn.quantity == -12 and txn.balance_after == 3
    assert db.query(InventoryTransaction).filter_by(material_id=material.id).count() == 2
    assert db.query(OutboxEvent).filter_by(topic="inventory.stock.adjusted").count() == 2


def test_adjust_cannot_go_negative(db, make):
    material = make.material(current_stock=4)
    with pytest.raises(InsufficientStockError):
        adjust_stock(db, material.id, adjustment="remove", quantity=5, reason="x", actor="t")
    db.rollback()
    db.refresh(material)
    assert material.current_stock == 4


def test_adjust_validates_input(db, make):
    material = make.material()
    with pytest.raises(ValidationError):
        adjust_stock(db, material.id, adjustment="set", quantity=1, reason="x", actor="t")
    with pytest.raises(ValidationError):
        adjust_stock(db, material.id, adjustment="add", quantity=0, reason="x", actor="t")
    with pytest.raises(NotFoundError):
        adjust_stock(db, "missing", adjustment="add", quantity=1, reason="x", actor="t")


def test_units_to_consume_rounds_up_without_float_noise():
    assert units_to_consume(10, 2, 10) == 22
    assert units_to_consume(1, 1, 5) == 2
    assert units_to_consume(0, 3, 10) == 0


def test_completion_consumes_bom_materials(db, make):
    steel, paint = make.material(current_stock=100), make.material(current_stock=10)
    product = make.product()
    make.bom(product, steel, quantity_needed="2", waste_percentage="10")
    make.bom(product, paint, quantity_needed="0.25", waste_percentage="0")
    order = make.production_order(product, quantity=10, status="IN_PROGRESS")

    production.update_production_order(db, order.id, {"status": "COMPLETED"}, actor="t")

    db.refresh(steel)
    db.refresh(paint)
    assert steel.current_stock == 78
    assert paint.current_stock == 7
    txns = db.query(InventoryTransaction).filter_by(reference_id=order.id, txn_type="CONSUMPTION").all()
    assert sorted(t.quantity for t in txns) == [-22, -3]
    assert db.query(OutboxEvent).filter_by(topic="production.order.completed").count() == 1

    # Saving a completed order again draws nothing further
    production.update_production_order(db, order.id, {"status": "COMPLETED", "notes": "done"}, actor="t")
    db.refresh(steel)
    assert steel.current_stock == 78


def test_completion_is_all_or_nothing(db, make):
    plenty, scarce = make.material(current_stock=1000), make.material(current_stock=1)
    product = make.product()
    make.bom(product, plenty, quantity_needed="1", waste_percentage="0")
    make.bom(product, scarce, quantity_needed="1", waste_percentage="0")
    order = make.production_order(product, quantity=5)

    with pytest.raises(InsufficientStockError):
        production.update_production_order(db, order.id, {"status": "COMPLETED"}, actor="t")
    db.rollback()

    db.refresh(plenty)
    assert plenty.current_stock == 1000
    assert db.get(ProductionOrder, order.id).status == "PENDING"
    assert db.query(InventoryTransaction).count() == 0


def test_link_customer_order_once(db, make):
    customer = Customer(name="Acme")
    db.add(customer)
    db.commit()
    product = make.product()

    co = sales.create_customer_order(
        db, customer_id=customer.id, required_date=datetime(2026, 2, 1),
        lines=[{"product_id": product.id, "quantity": 3, "unit_price": "12.50"}], actor="t",
    )
    assert float(co.total_amount) == pytest.approx(37.50)
    assert co.order_number.startswith("CO-")

    order = make.production_order(product)
    production.link_customer_order(db, order.id, co.id, actor="t")
    assert db.get(ProductionOrder, order.id).customer_order_id == co.id

    with pytest.raises(ConflictError):
        production.link_customer_order(db, order.id, co.id, actor="t")


def test_completed_order_cannot_be_reopened(db, make):
    steel = make.material(current_stock=100)
    product = make.product()
    make.bom(product, steel, quantity_needed="2", waste_percentage="10")
    order = make.production_order(product, quantity=10, status="IN_PROGRESS")
    production.update_production_order(db, order.id, {"status": "COMPLETED"}, actor="t")

    with pytest.raises(ConflictError):
        production.update_production_order(db, order.id, {"status": "PENDING"}, actor="t")
    with pytest.raises(ConflictError):
        production.update_production_order(db, order.id, {"quantity": 20}, actor="t")
    db.rollback()

    production.update_production_order(db, order.id, {"status": "COMPLETED"}, actor="t")
    db.refresh(steel)
    assert steel.current_stock == 78
    assert db.query(InventoryTransaction).filter_by(reference_id=order.id).count() == 1


def test_required_order_fields_reject_null(db, make):
    order = make.production_order(make.product())
    with pytest.raises(ValidationError):
        production.update_production_order(db, order.id, {"start_date": None}, actor="t")


def test_order_created_completed_consumes_stock(db, make):
    steel = make.material(current_stock=100)
    product = make.product()
    make.bom(product, steel, quantity_needed="2", waste_percentage="10")

    order = production.create_production_order(db, {
        "product_id": product.id, "quantity": 10, "status": "COMPLETED",
        "start_date": datetime(2026, 1, 5), "due_date": datetime(2026, 1, 12),
    }, actor="t")

    db.refresh(steel)
    assert steel.current_stock == 78
    txns = db.query(InventoryTransaction).filter_by(reference_id=order.id, txn_type="CONSUMPTION").all()
    assert [t.quantity for t in txns] == [-22]
    assert db.query(OutboxEvent).filter_by(topic="production.order.completed").count() == 1


def test_order_created_completed_needs_stock(db, make):
    scarce = make.material(current_stock=1)
    product = make.product()
    make.bom(product, scarce, quantity_needed="1", waste_percentage="0")

    with pytest.raises(InsufficientStockError):
        production.create_production_order(db, {
            "product_id": product.id, "quantity": 5, "status": "COMPLETED",
            "start_date": datetime(2026, 1, 5), "due_date": datetime(2026, 1, 12),
        }, actor="t")

    db.refresh(scarce)
    assert scarce.current_stock == 1
    assert db.query(ProductionOrder).count() == 0
