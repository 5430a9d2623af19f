"""
Pytest fixtures for order desk backend tests.

Provides test database setup, role-specific users, catalog rows, and a
test client with bearer-token helpers.
"""

import pytest
from oms import create_app
from oms.extensions import db
from oms.models import Customer, Product
from oms.permissions import ROLE_ADMIN, ROLE_AGENT, ROLE_SUPER_ADMIN
from oms.services.auth_service import create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def make_user(db_session):
    """Factory: make_user(role, email=None, name=None)."""
    counter = {"n": 0}

    def _make(role=ROLE_AGENT, email=None, name=None, password=PASSWORD):
        counter["n"] += 1
        n = counter["n"]
        return create_user(
            name=name or f"{role} {n}",
            email=email or f"user{n}@oms.test",
            password=password,
            role=role,
        )

    return _make


@pytest.fixture(scope='function')
def super_admin(make_user):
    return make_user(ROLE_SUPER_ADMIN, email="root@oms.test", name="Root")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(ROLE_ADMIN, email="admin@oms.test", name="Admin One")


@pytest.fixture(scope='function')
def agent(make_user):
    return make_user(ROLE_AGENT, email="agent@oms.test", name="Agent Smith")


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        name="Nimali Perera",
        phone="0771234567",
        address="12 Temple Road",
        city="Kandy",
        country="Sri Lanka",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, price_cents)."""
    def _make(name="Herbal Oil", price_cents=50_000, is_active=True):
        product = Product(name=name, price_cents=price_cents, weight=100, unit="ml", is_active=is_active)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product()


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_for(client):
    """Log a user in through the API and return bearer headers."""
    def _headers(user, password: str = PASSWORD) -> dict:
        token = get_auth_token(client, user.email, password)
        assert token, f"login failed for {user.email}"
        return auth_headers(token)

    return _headers
