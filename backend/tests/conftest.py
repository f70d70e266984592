"""
Pytest fixtures for the kasir backend tests.

Provides the application on an in-memory database, per-test table cleanup,
a test client and small data builders.
"""

import pytest

from app import create_app
from app.extensions import db
from app.models import Category, Product
from app.services import order_service, spending_service, subscription_service


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
        'BUSINESS_TIMEZONE': 'UTC',
        'DB_RETRY_ATTEMPTS': 3,
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
        assert subscription_service.active_count() == 0, "test leaked a live query"


@pytest.fixture(scope='function')
def category(db_session):
    c = Category(name="Minuman")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def product(db_session, category):
    p = Product(category_id=category.id, name="Es Teh", price=5000, stock=10)
    db_session.add(p)
    db_session.commit()
    return p


def cart(*lines):
    """Build cart items from (name, price, quantity) tuples or dicts."""
    items = []
    for line in lines:
        if isinstance(line, dict):
            items.append(line)
            continue
        name, price, quantity = line
        items.append({"product_name": name, "price": price, "quantity": quantity})
    return items


def make_order(payment_method="cash", payment_amount=None, customer_name=None, items=None):
    """Create an order and return its id, failing the test on rejection."""
    items = items or cart(("Nasi Goreng", 25000, 2))
    if payment_amount is None:
        payment_amount = order_service.calculate_total(items)
    result = order_service.create_order(
        items=items,
        payment_method=payment_method,
        payment_amount=payment_amount,
        customer_name=customer_name,
    )
    assert result.success, result.error
    return result.data


def make_spending(day, amount, description="Gas LPG"):
    result = spending_service.create_spending(
        description=description,
        total_amount=amount,
        spending_date=day,
    )
    assert result.success, result.error
    return result.data
