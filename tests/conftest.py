"""
Shared fixtures: an in-memory SQLite database per test, a session on it,
and a TestClient wired to the same database.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core import config
from app.db.session import Database
from app.db.models.auth import User
from app.db.models.catalog import MaterialType, Supplier, UnitOfMeasure
from app.db.models.materials import Material
from app.db.models.production import ProductionOrder
from app.db.models.products import BOMEntry, Product
from app.core.security import hash_password
from main import create_app


@pytest.fixture
def database():
    database = Database("sqlite://", echo=False)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(database):
    with TestClient(create_app(database)) as c:
        yield c


def make_token(role: str = "ADMIN", sub: str = "user-1", email: str = "admin@example.com") -> str:
    now = datetime.utcnow()
    claims = {
        "sub": sub,
        "email": email,
        "role": role,
        "aud": config.JWT_AUDIENCE,
        "iss": config.JWT_ISSUER,
        "iat": now,
        "exp": now + timedelta(minutes=15),
    }
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALG)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token('ADMIN')}"}


# ============================================================================
# Factories
# ============================================================================

class Factory:
    """Small builders for the rows most tests need."""

    def __init__(self, db):
        self.db = db
        self._n = 0

    def _next(self) -> int:
        self._n += 1
        return self._n

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def material_type(self, name=None):
        return self._save(MaterialType(name=name or f"Type {self._next()}"))

    def unit(self, name=None, symbol="kg"):
        return self._save(UnitOfMeasure(name=name or f"Unit {self._next()}", symbol=symbol))

    def supplier(self, **kw):
        n = self._next()
        return self._save(Supplier(code=kw.pop("code", f"SUP-{n}"), name=kw.pop("name", f"Supplier {n}"), **kw))

    def material(self, current_stock=100, minimum_stock_level=20, **kw):
        n = self._next()
        type_id = kw.pop("type_id", None) or self.material_type().id
        unit_id = kw.pop("unit_of_measure_id", None) or self.unit().id
        return self._save(Material(
            sku=kw.pop("sku", f"MAT-{n}"),
            name=kw.pop("name", f"Material {n}"),
            type_id=type_id,
            unit_of_measure_id=unit_id,
            cost_per_unit=kw.pop("cost_per_unit", Decimal("1.00")),
            current_stock=current_stock,
            minimum_stock_level=minimum_stock_level,
            **kw,
        ))

    def product(self, **kw):
        n = self._next()
        return self._save(Product(sku=kw.pop("sku", f"PRD-{n}"), name=kw.pop("name", f"Product {n}"), **kw))

    def bom(self, product, material, quantity_needed="2", waste_percentage="10"):
        return self._save(BOMEntry(
            product_id=product.id,
            material_id=material.id,
            quantity_needed=Decimal(str(quantity_needed)),
            waste_percentage=Decimal(str(waste_percentage)),
        ))

    def production_order(self, product, quantity=10, status="PENDING", **kw):
        start = kw.pop("start_date", datetime(2026, 1, 5))
        return self._save(ProductionOrder(
            product_id=product.id,
            quantity=quantity,
            status=status,
            start_date=start,
            due_date=kw.pop("due_date", start + timedelta(days=7)),
            **kw,
        ))

    def user(self, role="OPERATOR", **kw):
        n = self._next()
        return self._save(User(
            email=kw.pop("email", f"user{n}@example.com"),
            password_hash=hash_password("secret-password"),
            first_name=kw.pop("first_name", "Test"),
            last_name=kw.pop("last_name", f"User{n}"),
            role=role,
            **kw,
        ))


@pytest.fixture
def make(db):
    return Factory(db)
