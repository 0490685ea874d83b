"""
Pytest fixtures for storedesk backend tests.

Provides an in-memory database, a test client and small factories for the
records most tests need (store, products, voucher series lane).
"""

import pytest

from storedesk import create_app
from storedesk.extensions import db
from storedesk.domain.enums import VoucherType
from storedesk.models import Customer, Person, Product, Store, Supplier, VoucherSeries

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    "RETRY_ATTEMPTS": 3,
    "RETRY_BACKOFF_BASE": 0.0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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


@pytest.fixture(scope='function')
def store(db_session):
    store = Store(name="Bodega Central", ruc="20123456789", address="Av. Lima 123")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def other_store(db_session):
    store = Store(name="Bodega Norte", ruc="20987654321")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def make_product(db_session, store):
    """Factory: make_product(sku="P-1", stock=10, price_cents=1000, **overrides)."""
    counter = {"n": 0}

    def _make(sku=None, stock=10, price_cents=1000, **overrides):
        counter["n"] += 1
        product = Product(
            store_id=overrides.pop("store_id", store.id),
            sku=sku or f"SKU-{counter['n']:03d}",
            name=overrides.pop("name", f"Product {counter['n']}"),
            price_cents=price_cents,
            current_stock=stock,
            **overrides,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product(sku="RICE-1KG", name="Rice 1kg", stock=10, price_cents=500)


@pytest.fixture(scope='function')
def receipt_lane(db_session, store):
    lane = VoucherSeries.create(store_id=store.id, voucher_type=VoucherType.RECEIPT, series="B001")
    db_session.add(lane)
    db_session.commit()
    return lane


@pytest.fixture(scope='function')
def customer(db_session, store):
    person = Person(document_type="DNI", document_number="45678912", names="Ana", last_names="Quispe")
    db_session.add(person)
    db_session.flush()
    customer = Customer(store_id=store.id, person_id=person.id)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier(db_session, store):
    person = Person(document_type="RUC", document_number="20555555551", names="Distribuidora Andina")
    db_session.add(person)
    db_session.flush()
    supplier = Supplier(store_id=store.id, person_id=person.id, company_name="Distribuidora Andina SAC")
    db_session.add(supplier)
    db_session.commit()
    return supplier
