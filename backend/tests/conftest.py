"""
Pytest fixtures for stock ledger backend tests.

Provides test database setup, role/user fixtures, and test client.
"""

from decimal import Decimal

import pytest
from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import User
from stockledger.services.auth_service import create_account, create_default_roles
from stockledger.services.ingredient_service import create_ingredient
from stockledger.services.session_service import create_session

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'LEDGER_RETRY_BACKOFF_SECONDS': 0,
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
def setup_roles(db_session):
    """Setup default roles (admin, inventory)."""
    create_default_roles()


def _make_user(username: str, role: str) -> User:
    user_id = create_account(
        f"{username}@stockledger.test",
        TEST_PASSWORD,
        {"username": username, "role": role},
    ).unwrap()
    return db.session.get(User, user_id)


@pytest.fixture(scope='function')
def admin_user(setup_roles):
    return _make_user("admin", "admin")


@pytest.fixture(scope='function')
def inventory_user(setup_roles):
    return _make_user("clerk", "inventory")


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def inventory_headers(inventory_user):
    _, token = create_session(inventory_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_ingredient(db_session):
    """Factory: create an ingredient through the repository and return it."""
    def _make(name="Flour", unit="kg", unit_cost="2.50", stock_quantity="0", minimum_stock="0"):
        return create_ingredient({
            "name": name,
            "unit": unit,
            "unit_cost": Decimal(unit_cost),
            "stock_quantity": Decimal(stock_quantity),
            "minimum_stock": Decimal(minimum_stock),
        }).unwrap()
    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
