"""
Lifecycle guards: referenced rows refuse deletion until the references go.
"""
from datetime import datetime, timedelta

import pytest

from app.core.errors import InUseError
from app.db.models.catalog import Category
from app.db.models.materials import Material
from app.db.models.production import Operation, QualityCheck, WorkCenter
from app.db.models.products import BOMEntry
from app.db.models.sales import Customer
from services.materials import service as materials
from services.production import service as production
from services.products import service as products
from services.sales import service as sales


def test_material_in_bom_cannot_be_deleted_until_entry_removed(db, make):
    material = make.material()
    entry = make.bom(make.product(), material)

    with pytest.raises(InUseError, match="Cannot delete material as it is being used in BOMs"):
        materials.delete_material(db, material.id)
    assert db.get(Material, material.id) is not None

    db.delete(db.get(BOMEntry, entry.id))
    db.commit()
    materials.delete_material(db, material.id)
    assert db.get(Material, material.id) is None


def test_material_type_and_unit_guarded_by_materials(db, make):
    material = make.material()
    with pytest.raises(InUseError, match="material type"):
        materials.delete_material_type(db, material.type_id)
    with pytest.raises(InUseError, match="unit of measure"):
        materials.delete_unit_of_measure(db, material.unit_of_measure_id)


def test_supplier_guarded_by_materials(db, make):
    supplier = make.supplier()
    make.material(supplier_id=supplier.id)
    with pytest.raises(InUseError):
        materials.delete_supplier(db, supplier.id)


def test_unreferenced_supplier_deletes(db, make):
    supplier = make.supplier()
    materials.delete_supplier(db, supplier.id)


def test_category_guarded_by_products(db, make):

    category = Category(name="Widgets")
    db.add(category)
    db.commit()
    make.product(category_id=category.id)

    with pytest.raises(InUseError, match="Cannot delete category with associated products"):
        products.delete_category(db, category.id)


def test_product_guarded_by_bom_and_orders(db, make):
    product = make.product()
    make.bom(product, make.material())
    with pytest.raises(InUseError, match="BOM"):
        products.delete_product(db, product.id)

    other = make.product()
    make.production_order(other)
    with pytest.raises(InUseError, match="production orders"):
        products.delete_product(db, other.id)


def _work_center(db, name="Cell A"):
    wc = WorkCenter(name=name)
    db.add(wc)
    db.commit()
    return wc


def _operation(db, order, wc, status="PENDING"):
    start = datetime(2026, 1, 5, 8)
    op = Operation(production_order_id=order.id, work_center_id=wc.id, start_time=start,
                   end_time=start + timedelta(hours=2), status=status)
    db.add(op)
    db.commit()
    return op


def test_production_order_guarded_by_operations(db, make):
    order = make.production_order(make.product())
    _operation(db, order, _work_center(db))
    with pytest.raises(InUseError, match="operations or quality checks"):
        production.delete_production_order(db, order.id)


def test_production_order_guarded_by_quality_checks(db, make):
    order = make.production_order(make.product())
    inspector = make.user(role="INSPECTOR")
    db.add(QualityCheck(production_order_id=order.id, inspector_id=inspector.id, check_date=datetime(2026, 1, 6)))
    db.commit()
    with pytest.raises(InUseError):
        production.delete_production_order(db, order.id)


def test_work_center_guarded_by_operations(db, make):
    wc = _work_center(db)
    _operation(db, make.production_order(make.product()), wc)
    with pytest.raises(InUseError, match="Cannot delete WorkCenter as it is linked to operations"):
        production.delete_work_center(db, wc.id)


@pytest.mark.parametrize("status", ["IN_PROGRESS", "COMPLETED"])
def test_started_operations_cannot_be_deleted(db, make, status):
    op = _operation(db, make.production_order(make.product()), _work_center(db), status=status)
    with pytest.raises(InUseError):
        production.delete_operation(db, op.id)


def test_pending_operation_can_be_deleted(db, make):
    op = _operation(db, make.production_order(make.product()), _work_center(db))
    production.delete_operation(db, op.id)
    assert db.get(Operation, op.id) is None


def test_customer_with_orders_cannot_be_deleted(db, make):

    customer = Customer(name="Acme")
    db.add(customer)
    db.commit()
    sales.create_customer_order(
        db,
        customer_id=customer.id,
        required_date=datetime(2026, 3, 1),
        lines=[{"product_id": make.product().id, "quantity": 2, "unit_price": "19.99"}],
        actor="t",
    )
    with pytest.raises(InUseError):
        sales.delete_customer(db, customer.id)
