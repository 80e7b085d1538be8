"""
Pytest fixtures for storefront backend tests.

Provides test database setup, user factories, an order helper and the
test client.
"""

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.services import order_feed_service, order_service, user_service


PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
}

DEFAULT_ITEMS = [
    {"id": "p-tofu", "name": "Tofu", "price": "2.50", "quantity": 2},
    {"id": "p-soy", "name": "Soy Powder", "price": 10, "quantity": 1},
]

DEFAULT_ADDRESS = {
    "street": "12 Mabini St",
    "city": "Quezon City",
    "state": "Metro Manila",
    "postal_code": "1000",
    "country_code": "PH",
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
    """Create fresh database (and a fresh order feed) for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        order_feed_service.init_app(app)

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_customer(email="ana@example.com", first_name="Ana", last_name="Santos"):
    return user_service.register_customer(email, PASSWORD, first_name, last_name)


def make_franchise(email="owner@example.com", username="fr_owner", first_name="Owen"):
    return user_service.create_user(
        "franchise", email, PASSWORD, first_name, "Reyes", username=username
    )


def place_order(owner_id, franchise_id="default", items=None, address=None, **kwargs):
    return order_service.create_order(
        owner_id,
        franchise_id,
        items if items is not None else DEFAULT_ITEMS,
        address if address is not None else DEFAULT_ADDRESS,
        **kwargs,
    )


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer cu000001."""
    return make_customer()


@pytest.fixture(scope='function')
def other_customer(db_session):
    return make_customer(email="ben@example.com", first_name="Ben", last_name="Cruz")


@pytest.fixture(scope='function')
def franchise(db_session):
    """Franchise fr000001 created directly (no customer history)."""
    return make_franchise()


@pytest.fixture(scope='function')
def webmaster(db_session):
    return user_service.create_user(
        "webmaster", "webmaster@example.com", PASSWORD, "Site", "Admin", username="webmaster"
    )


def get_auth_token(client, identifier: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'identifier': identifier,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
