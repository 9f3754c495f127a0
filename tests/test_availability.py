"""
Availability and usage projections over open production demand.
"""
from decimal import Decimal

import pytest

from app.core import config
from app.core.errors import NotFoundError, ValidationError
from services.materials.availability import (
    compute_material_availability,
    get_material_usage,
    line_commitment,
)


@pytest.fixture
def scenario_a(db, make):
    material = make.material(current_stock=100, minimum_stock_level=20)
    product = make.product()
    make.bom(product, material, quantity_needed="2", waste_percentage="10")
    make.production_order(product, quantity=10, status="PENDING")
    return material, product


def test_scenario_a_available(db, scenario_a):
    material, _ = scenario_a
    result = compute_material_availability(db, material.id, 50)

    assert result.committed_quantity == pytest.approx(22)
    assert result.available_stock == pytest.approx(78)
    assert result.is_available is True
    assert result.shortfall == 0
    assert result.is_below_minimum is False
    assert result.unit_symbol == "kg"


def test_scenario_a_shortfall(db, scenario_a):
    material, _ = scenario_a
    result = compute_material_availability(db, material.id, 90)

    assert result.is_available is False
    assert result.shortfall == pytest.approx(12)


def test_unknown_material_is_not_found(db):
    with pytest.raises(NotFoundError):
        compute_material_availability(db, "does-not-exist", 1)


def test_negative_required_quantity_rejected(db, scenario_a):
    material, _ = scenario_a
    with pytest.raises(ValidationError):
        compute_material_availability(db, material.id, -5)


def test_commitment_is_additive_across_entries_and_orders(db, make):
    material = make.material(current_stock=500)
    p1, p2 = make.product(), make.product()
    make.bom(p1, material, quantity_needed="1.5", waste_percentage="0")
    make.bom(p2, material, quantity_needed="3", waste_percentage="5")
    make.production_order(p1, quantity=4, status="PENDING")
    make.production_order(p2, quantity=2, status="IN_PROGRESS")

    before = compute_material_availability(db, material.id, 0).committed_quantity
    expected = line_commitment(4, Decimal("1.5"), 0) + line_commitment(2, 3, 5)
    assert before == pytest.approx(expected)

    make.production_order(p2, quantity=7, status="PENDING")
    after = compute_material_availability(db, material.id, 0)
    assert after.committed_quantity - before == pytest.approx(7 * 3 * 1.05)
    assert after.current_stock == 500


def test_closed_orders_do_not_commit_stock(db, make):
    material = make.material(current_stock=50)
    product = make.product()
    make.bom(product, material, quantity_needed="1", waste_percentage="0")
    for status in ("COMPLETED", "CANCELLED", "ACTIVE"):
        make.production_order(product, quantity=10, status=status)

    result = compute_material_availability(db, material.id, 0)
    assert result.committed_quantity == 0
    assert result.available_stock == 50


def test_active_counts_when_configured(db, make, monkeypatch):
    monkeypatch.setattr(config, "OPEN_PRODUCTION_STATUSES", ("PENDING", "IN_PROGRESS", "ACTIVE"))
    material = make.material(current_stock=50)
    product = make.product()
    make.bom(product, material, quantity_needed="1", waste_percentage="0")
    make.production_order(product, quantity=10, status="ACTIVE")

    assert compute_material_availability(db, material.id, 0).committed_quantity == pytest.approx(10)


@pytest.mark.parametrize("required", [0, 10, 77.9, 78, 78.1, 1000])
def test_availability_consistency(db, scenario_a, required):
    material, _ = scenario_a
    r = compute_material_availability(db, material.id, required)
    assert r.is_available == (r.current_stock - r.committed_quantity >= r.required_quantity)
    assert r.shortfall == pytest.approx(max(0, r.required_quantity - r.available_stock))


def test_below_minimum_uses_available_stock(db, make):
    material = make.material(current_stock=30, minimum_stock_level=20)
    product = make.product()
    make.bom(product, material, quantity_needed="1", waste_percentage="0")
    make.production_order(product, quantity=15)

    assert compute_material_availability(db, material.id, 0).is_below_minimum is True


def test_usage_per_product(db, scenario_a, make):
    material, product = scenario_a
    idle = make.product(name="Idle product")
    make.bom(idle, material, quantity_needed="4", waste_percentage="0")

    usage = {u.product_id: u for u in get_material_usage(db, material.id)}

    assert usage[product.id].pending_production == 10
    assert usage[product.id].projected_usage == pytest.approx(22)
    assert usage[product.id].product_sku == product.sku
    assert usage[idle.id].pending_production == 0
    assert usage[idle.id].projected_usage == 0


def test_usage_unknown_material(db):
    with pytest.raises(NotFoundError):
        get_material_usage(db, "missing")
