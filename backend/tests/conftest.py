"""
Pytest fixtures for MatPro backend tests.

Provides an in-memory database, store/product/customer/user fixtures,
access scopes and authenticated client helpers.
"""

from decimal import Decimal

import bcrypt
import pytest

from matpro import create_app
from matpro.extensions import db
from matpro.models import Customer, Product, Store, User
from matpro.models.auth import ROLE_OWNER, ROLE_STORE_MANAGER
from matpro.models.inventory import EVENT_RECEIVE
from matpro.services import session_service
from matpro.services.ledger_service import append_stock_event
from matpro.services.scope_service import AccessScope


TEST_PIN = "1234"
# Low cost factor keeps fixture setup fast; verify_pin accepts any cost
TEST_PIN_HASH = bcrypt.hashpw(TEST_PIN.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SYNC_PULL_PAGE_SIZE': 100,
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


@pytest.fixture(scope='function')
def store(db_session):
    store = Store(name="Main Yard", code="MAIN")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def other_store(db_session):
    store = Store(name="Branch Yard", code="BR1")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def product(db_session):
    product = Product(
        sku="ROOF-28G",
        name="Roofing sheet 28 gauge",
        unit="sheet",
        retail_price=Decimal("10.00"),
        cost_price=Decimal("7.50"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session):
    product = Product(
        sku="NAIL-3IN",
        name="Roofing nails 3in",
        unit="kg",
        retail_price=Decimal("5.00"),
        cost_price=Decimal("3.00"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Kofi Builders", phone="0244000000")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def owner(db_session):
    user = User(phone="0200000001", full_name="Owner", pin_hash=TEST_PIN_HASH, role=ROLE_OWNER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def manager(db_session, store):
    user = User(
        phone="0200000002",
        full_name="Main Manager",
        pin_hash=TEST_PIN_HASH,
        role=ROLE_STORE_MANAGER,
        store_id=store.id,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner_scope(owner):
    return AccessScope.for_user(owner)


@pytest.fixture(scope='function')
def manager_scope(manager):
    return AccessScope.for_user(manager)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(owner):
    _, token = session_service.create_session(owner)
    return auth_headers(token)


@pytest.fixture(scope='function')
def manager_headers(manager):
    _, token = session_service.create_session(manager)
    return auth_headers(token)


@pytest.fixture(scope='function')
def receive_stock(db_session):
    """Seed on-hand quantity through the ledger: receive_stock(store_id, product_id, qty)."""
    def _receive(store_id: str, product_id: str, quantity: int):
        event = append_stock_event(
            event_type=EVENT_RECEIVE,
            product_id=product_id,
            store_id=store_id,
            quantity=quantity,
        )
        db_session.commit()
        return event
    return _receive
