"""
Pytest fixtures for fenceflow backend tests.

Provides an in-memory database, test client, default admin/agency users,
catalog and project rows, and bearer-token helpers.
"""

from decimal import Decimal

import pytest
from fenceflow import create_app
from fenceflow.extensions import db
from fenceflow.models import User, Category, Product, Project, ROLE_ADMIN, ROLE_AGENCY
from fenceflow.services.auth_service import hash_password
from fenceflow.services.token_service import create_access_token

ADMIN_PASSWORD = "admin123"
AGENCY_PASSWORD = "agency123"

# bcrypt at cost 12 is slow; hash once per test session
_ADMIN_HASH = hash_password(ADMIN_PASSWORD)
_AGENCY_HASH = hash_password(AGENCY_PASSWORD)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-jwt-secret',
        'SEED_ON_STARTUP': False,
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
def admin_user(db_session):
    user = User(
        username="admin",
        email="admin@adrde.gov",
        password_hash=_ADMIN_HASH,
        role=ROLE_ADMIN,
        name="System Administrator",
        agency_name="ADRDE",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def agency_user(db_session):
    user = User(
        username="agency1",
        email="agency1@adrde.gov",
        password_hash=_AGENCY_HASH,
        role=ROLE_AGENCY,
        name="Defense Agency 1",
        agency_name="Defense Agency 1",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_agency_user(db_session):
    user = User(
        username="agency2",
        email="agency2@adrde.gov",
        password_hash=_AGENCY_HASH,
        role=ROLE_AGENCY,
        name="Defense Agency 2",
        agency_name="Defense Agency 2",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(create_access_token(admin_user))


@pytest.fixture(scope='function')
def agency_headers(agency_user):
    return auth_headers(create_access_token(agency_user))


@pytest.fixture(scope='function')
def other_agency_headers(other_agency_user):
    return auth_headers(create_access_token(other_agency_user))


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Fencing Materials", description="Fencing Materials for defense projects")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def product(db_session, category):
    """Active product with 100 on hand at 1500.00 each."""
    p = Product(
        name="Barbed Wire Fence",
        description="High-security barbed wire fencing",
        category_id=category.id,
        sku="FENCE-001",
        price=Decimal("1500.00"),
        cost=Decimal("1200.00"),
        stock_quantity=100,
        min_stock_level=10,
        status="active",
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def second_product(db_session, category):
    """Active product with only 5 on hand (below its minimum)."""
    p = Product(
        name="Security Gate",
        category_id=category.id,
        sku="GATE-001",
        price=Decimal("25000.00"),
        stock_quantity=5,
        min_stock_level=10,
        status="active",
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def project(db_session, admin_user):
    p = Project(
        name="Border Security Fence",
        description="Installation of high-security fencing",
        status="in_progress",
        budget=Decimal("5000000.00"),
        manager_id=admin_user.id,
    )
    db_session.add(p)
    db_session.commit()
    return p


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get authentication token."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
