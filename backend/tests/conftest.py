"""
Pytest fixtures for RetailHub backend tests.

Provides test database setup, per-role users with token headers, and a
small stocked store (branch -> store -> inventory -> items).
"""

import pytest

from retailhub import create_app
from retailhub.extensions import db
from retailhub.models import (
    Branch,
    Category,
    InventoryItem,
    Item,
    User,
    ROLE_ADMIN,
    ROLE_CASHIER,
    ROLE_MANAGER,
)
from retailhub.services import session_service, store_service
from retailhub.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
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


def make_user(session, username: str, role: str, manager: User | None = None) -> User:
    user = User(
        username=username,
        email=f"{username}@retailhub.test",
        fullname=username.replace("_", " ").title(),
        password_hash=hash_password(PASSWORD),
        role=role,
        manager_id=manager.id if manager else None,
    )
    session.add(user)
    session.commit()
    return user


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user: User) -> dict:
    tokens = session_service.issue_tokens(user.id)
    return auth_headers(tokens.access_token)


@pytest.fixture(scope='function')
def admin(db_session):
    """Tenant owner."""
    return make_user(db_session, "owner_admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager(db_session, admin):
    return make_user(db_session, "floor_manager", ROLE_MANAGER, manager=admin)


@pytest.fixture(scope='function')
def cashier(db_session, manager):
    return make_user(db_session, "till_cashier", ROLE_CASHIER, manager=manager)


@pytest.fixture(scope='function')
def other_admin(db_session):
    """Owner of a second tenant."""
    return make_user(db_session, "rival_admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return headers_for(manager)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return headers_for(cashier)


@pytest.fixture(scope='function')
def other_admin_headers(other_admin):
    return headers_for(other_admin)


@pytest.fixture(scope='function')
def branch(db_session, admin):
    branch = Branch(name="Downtown", address="1 Main St", phone="555-0100", owner_id=admin.id)
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def store(db_session, admin, branch):
    """Store created through the service so it carries its inventory."""
    return store_service.create_store(admin, branch.id, {
        "name": "Corner Shop",
        "code": "CS-01",
        "address": "2 Main St",
        "outlet_type": "RETAIL",
        "government_tax_bps": 825,
    })


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Beverages")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def items(db_session, category):
    cola = Item(name="Cola", price_cents=150, category_id=category.id)
    chips = Item(name="Chips", price_cents=299, category_id=category.id)
    db_session.add_all([cola, chips])
    db_session.commit()
    return cola, chips


@pytest.fixture(scope='function')
def stocked(db_session, store, items):
    """Cola x10 and Chips x5 in the store's inventory. Returns (store, cola, chips)."""
    cola, chips = items
    inventory_id = store.inventory.id
    db_session.add_all([
        InventoryItem(inventory_id=inventory_id, item_id=cola.id, quantity=10),
        InventoryItem(inventory_id=inventory_id, item_id=chips.id, quantity=5),
    ])
    db_session.commit()
    return store, cola, chips


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Current quantity of an (inventory, item) row, or None when absent."""
    def _stock_of(inventory_id: int, item_id: int) -> int | None:
        row = db_session.query(InventoryItem).filter_by(inventory_id=inventory_id, item_id=item_id).first()
        return row.quantity if row else None
    return _stock_of


@pytest.fixture(scope='function')
def user_factory(db_session):
    def _make(username: str, role: str, manager: User | None = None) -> User:
        return make_user(db_session, username, role, manager=manager)
    return _make


@pytest.fixture(scope='function')
def login(client):
    """Log in through the API and return the JSON body."""
    def _login(email: str, password: str = PASSWORD):
        return client.post('/api/users/login', json={'email': email, 'password': password})
    return _login
