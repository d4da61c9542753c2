"""
Pytest fixtures for bevstock backend tests.

Provides an in-memory database, a test client, caller headers, and product
factories.
"""

from datetime import datetime

import pytest

from bevstock import create_app
from bevstock.extensions import db
from bevstock.models import Product, Sale, SaleItem, StockEntry


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REPORT_TIMEZONE': 'UTC',
        'AUDIT_MODE': 'best_effort',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def auth_headers():
    """Caller identity as forwarded by the upstream gateway."""
    return {"X-User-Id": "user-1", "X-User-Role": "manager"}


@pytest.fixture
def make_product(db_session):
    """Factory: insert a product directly (bypasses validation)."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "name": f"Product {counter['n']}",
            "category": "Beer",
            "buying_price_cents": 100,
            "selling_price_cents": 250,
            "opening_stock": 10,
            "reorder_level": None,
        }
        fields.update(overrides)
        p = Product(**fields)
        db_session.add(p)
        db_session.commit()
        return p

    return _make


@pytest.fixture
def add_entry(db_session):
    """Factory: append a raw stock entry row."""
    def _add(product, entry_type, quantity, created_at=None, reason=None):
        e = StockEntry(
            product_id=product.id,
            type=entry_type,
            quantity=quantity,
            reason=reason if reason is not None else ("count" if entry_type == "adjustment" else None),
        )
        if created_at is not None:
            e.created_at = created_at
        db_session.add(e)
        db_session.commit()
        return e

    return _add


@pytest.fixture
def add_sale(db_session):
    """
    Factory: insert a sale and its items directly at a fixed time.

    lines: list of (product, quantity, price_cents)
    """
    def _add(lines, created_at: datetime, payment_type="Cash", is_reversed=False, reversed_sale_id=None):
        sale = Sale(
            total_units=sum(q for _, q, _ in lines),
            total_value_cents=sum(q * p for _, q, p in lines),
            payment_type=payment_type,
            is_reversed=is_reversed,
            reversed_sale_id=reversed_sale_id,
            created_at=created_at,
        )
        db_session.add(sale)
        db_session.flush()
        for product, quantity, price in lines:
            db_session.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                quantity=quantity,
                selling_price_cents=price,
                created_at=created_at,
            ))
        db_session.commit()
        return sale

    return _add
