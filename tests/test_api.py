"""
Route-level checks: wiring, error rendering, validation and role gates.
"""
import pytest

from conftest import make_token


def _material_payload(client, sku="STL-1", stock=100):
    t = client.post("/catalog/material-types", json={"name": f"Metal {sku}"}).json()
    u = client.post("/catalog/units", json={"name": f"Kilogram {sku}", "symbol": "kg"}).json()
    return {
        "sku": sku,
        "name": f"Steel {sku}",
        "type_id": t["id"],
        "unit_of_measure_id": u["id"],
        "cost_per_unit": "4.20",
        "current_stock": stock,
        "minimum_stock_level": 20,
    }


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_material_round_trip_returns_plain_numbers(client):
    r = client.post("/materials", json=_material_payload(client))
    assert r.status_code == 201
    body = r.json()
    assert body["cost_per_unit"] == 4.2
    assert body["unit_symbol"] == "kg"

    listed = client.get("/materials", params={"q": "stl"}).json()
    assert [m["sku"] for m in listed] == ["STL-1"]


def test_availability_endpoint(client):
    material = client.post("/materials", json=_material_payload(client)).json()
    product = client.post("/products", json={"sku": "P-1", "name": "Frame"}).json()
    r = client.post(f"/products/{product['id']}/bom", json={
        "material_id": material["id"], "quantity_needed": "2", "waste_percentage": "10",
    })
    assert r.status_code == 201
    client.post("/production/orders", json={
        "product_id": product["id"], "quantity": 10,
        "start_date": "2026-01-05T08:00:00", "due_date": "2026-01-12T08:00:00",
    })

    body = client.get(f"/materials/{material['id']}/availability", params={"required_quantity": 90}).json()
    assert body["committed_quantity"] == pytest.approx(22)
    assert body["available_stock"] == pytest.approx(78)
    assert body["is_available"] is False
    assert body["shortfall"] == pytest.approx(12)

    usage = client.get(f"/materials/{material['id']}/usage").json()
    assert usage[0]["projected_usage"] == 22


def test_not_found_is_rendered_with_error_code(client):
    r = client.get("/materials/nope/availability", params={"required_quantity": 1})
    assert r.status_code == 404
    assert r.json() == {"detail": "Material not found", "error": "not_found"}


def test_in_use_renders_400(client):
    material = client.post("/materials", json=_material_payload(client)).json()
    product = client.post("/products", json={"sku": "P-2", "name": "Rack"}).json()
    client.post(f"/products/{product['id']}/bom", json={"material_id": material["id"], "quantity_needed": "1"})

    r = client.delete(f"/materials/{material['id']}")
    assert r.status_code == 400
    assert r.json()["error"] == "in_use"


def test_purchase_order_flow(client):
    material = client.post("/materials", json=_material_payload(client, stock=0)).json()
    supplier = client.post("/catalog/suppliers", json={"code": "ACME", "name": "Acme Metals"}).json()

    r = client.post("/purchasing/purchase-orders", json={
        "supplier_id": supplier["id"],
        "lines": [
            {"material_id": material["id"], "quantity": 3, "unit_price": "10.50"},
            {"material_id": material["id"], "quantity": 2, "unit_price": "5.25"},
        ],
    })
    assert r.status_code == 201
    po = r.json()
    assert po["total_amount"] == 42.0
    assert po["status"] == "PENDING"
    assert po["po_number"].startswith("PO-")

    small = next(ln for ln in po["lines"] if ln["quantity"] == 2)
    r = client.delete(f"/purchasing/lines/{small['id']}")
    assert r.json() == {"ok": True, "total_recomputed": True}
    assert client.get(f"/purchasing/purchase-orders/{po['id']}").json()["total_amount"] == 31.5

    big = next(ln for ln in po["lines"] if ln["quantity"] == 3)
    assert client.post(f"/purchasing/lines/{big['id']}/receive").status_code == 200
    assert client.get(f"/materials/{material['id']}").json()["current_stock"] == 3
    assert client.post(f"/purchasing/lines/{big['id']}/receive").status_code == 409


@pytest.mark.parametrize("line", [
    {"quantity": 0, "unit_price": "1.00"},
    {"quantity": 1, "unit_price": "0.00"},
    {"quantity": 1, "unit_price": "1.234"},
])
def test_line_validation(client, line):
    material = client.post("/materials", json=_material_payload(client)).json()
    r = client.post("/purchasing/lines", json={"material_id": material["id"], **line})
    assert r.status_code == 422


def test_adjust_stock_endpoint(client):
    material = client.post("/materials", json=_material_payload(client, stock=5)).json()
    r = client.post(f"/materials/{material['id']}/adjust-stock", json={"type": "remove", "quantity": 6, "reason": "scrap"})
    assert r.status_code == 409
    assert r.json()["error"] == "insufficient_stock"

    r = client.post(f"/materials/{material['id']}/adjust-stock", json={"type": "add", "quantity": 6, "reason": "count"})
    assert r.json()["current_stock"] == 11

    alerts = client.get("/materials/alerts/low-stock").json()
    assert [a["id"] for a in alerts] == [material["id"]]


def test_users_require_admin(client):
    assert client.get("/users").status_code == 401
    operator = {"Authorization": f"Bearer {make_token('OPERATOR')}"}
    assert client.get("/users", headers=operator).status_code == 403


def test_inspector_assignment(client, admin_headers):
    r = client.post("/users", headers=admin_headers, json={
        "email": "ines@example.com", "password": "correct-horse", "first_name": "Ines", "role": "INSPECTOR",
    })
    assert r.status_code == 201
    inspector = r.json()
    assert "password_hash" not in inspector
    operator = client.post("/users", headers=admin_headers, json={
        "email": "op@example.com", "password": "correct-horse", "role": "OPERATOR",
    }).json()

    inspectors = client.get("/users/inspectors", headers=admin_headers).json()
    assert [u["id"] for u in inspectors] == [inspector["id"]]

    product = client.post("/products", json={"sku": "P-9", "name": "Bench"}).json()
    order = client.post("/production/orders", json={
        "product_id": product["id"], "quantity": 1,
        "start_date": "2026-01-05T08:00:00", "due_date": "2026-01-06T08:00:00",
    }).json()

    bad = client.post("/quality/checks", json={
        "production_order_id": order["id"], "inspector_id": operator["id"], "check_date": "2026-01-06T09:00:00",
    })
    assert bad.status_code == 422

    ok = client.post("/quality/checks", json={
        "production_order_id": order["id"], "inspector_id": inspector["id"], "check_date": "2026-01-06T09:00:00",
    })
    assert ok.status_code == 201
    assert ok.json()["status"] == "PENDING"


def test_line_patch_rejects_null_required_fields(client):
    material = client.post("/materials", json=_material_payload(client)).json()
    line = client.post("/purchasing/lines", json={
        "material_id": material["id"], "quantity": 2, "unit_price": "3.00", "notes": "rush",
    }).json()

    for field in ("unit_price", "quantity", "material_id"):
        r = client.patch(f"/purchasing/lines/{line['id']}", json={field: None})
        assert r.status_code == 422, field

    r = client.patch(f"/purchasing/lines/{line['id']}", json={"po_id": None, "notes": None})
    assert r.status_code == 200
    assert r.json()["notes"] is None


def test_production_order_patch_rejects_null_start_date(client):
    product = client.post("/products", json={"sku": "P-3", "name": "Shelf"}).json()
    order = client.post("/production/orders", json={
        "product_id": product["id"], "quantity": 1,
        "start_date": "2026-01-05T08:00:00", "due_date": "2026-01-12T08:00:00",
    }).json()

    r = client.patch(f"/production/orders/{order['id']}", json={"start_date": None})
    assert r.status_code == 422
    r = client.patch(f"/production/orders/{order['id']}", json={"quantity": None})
    assert r.status_code == 422


def test_production_order_created_completed_and_ledger(client):
    material = client.post("/materials", json=_material_payload(client)).json()
    product = client.post("/products", json={"sku": "P-4", "name": "Cart"}).json()
    client.post(f"/products/{product['id']}/bom", json={
        "material_id": material["id"], "quantity_needed": "2", "waste_percentage": "10",
    })

    r = client.post("/production/orders", json={
        "product_id": product["id"], "quantity": 10, "status": "COMPLETED",
        "start_date": "2026-01-05T08:00:00", "due_date": "2026-01-12T08:00:00",
    })
    assert r.status_code == 201
    order = r.json()
    assert client.get(f"/materials/{material['id']}").json()["current_stock"] == 78

    r = client.patch(f"/production/orders/{order['id']}", json={"status": "PENDING"})
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"

    ledger = client.get(f"/materials/{material['id']}/transactions").json()
    assert [(t["txn_type"], t["quantity"], t["balance_after"]) for t in ledger] == [("CONSUMPTION", -22, 78)]
    assert ledger[0]["reference_id"] == order["id"]


def test_transactions_of_unknown_material(client):
    r = client.get("/materials/nope/transactions")
    assert r.status_code == 404
