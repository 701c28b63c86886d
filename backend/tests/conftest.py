"""
Pytest fixtures for stockmanager backend tests.

Provides test database setup, two-tenant fixtures, and test client.
"""

import pytest
from stockmanager import create_app
from stockmanager.extensions import db
from stockmanager.services import catalog_service, tenant_service
from stockmanager.services.auth_service import create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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
def seller_a(db_session):
    """Seller A (first tenant) on the PRO tier: reports enabled, unlimited products."""
    return tenant_service.create_seller(business_name="Seller A - Corner Shop", tier="PRO")


@pytest.fixture(scope='function')
def seller_b(db_session):
    """Seller B (second tenant) on the FREE tier."""
    return tenant_service.create_seller(business_name="Seller B - Beta Mart", tier="FREE")


@pytest.fixture(scope='function')
def owner_a(seller_a):
    return create_user(name="Owner A", email="owner_a@shop.com", password=PASSWORD,
                       role="OWNER", seller_id=seller_a.id)


@pytest.fixture(scope='function')
def operations_a(seller_a):
    return create_user(name="Counter A", email="counter_a@shop.com", password=PASSWORD,
                       role="OPERATIONS", seller_id=seller_a.id)


@pytest.fixture(scope='function')
def owner_b(seller_b):
    return create_user(name="Owner B", email="owner_b@beta.com", password=PASSWORD,
                       role="OWNER", seller_id=seller_b.id)


@pytest.fixture(scope='function')
def category_a(seller_a):
    return catalog_service.create_category(seller_a.id, "Grocery")


@pytest.fixture(scope='function')
def category_b(seller_b):
    return catalog_service.create_category(seller_b.id, "Grocery")


def make_product(seller_id, category_id, *, name="Product", purchase=600, selling=1000,
                 stock=10, min_level=0, actor_id=None):
    """Create a product; opening stock goes through the ledger."""
    return catalog_service.create_product(
        seller_id=seller_id,
        actor_id=actor_id,
        name=name,
        category_id=category_id,
        purchase_price_cents=purchase,
        selling_price_cents=selling,
        opening_stock=stock,
        min_stock_level=min_level,
    )


@pytest.fixture(scope='function')
def product_a(seller_a, category_a):
    """Product in Seller A: cost 6.00, price 10.00, stock 10."""
    return make_product(seller_a.id, category_a.id, name="Product A")


@pytest.fixture(scope='function')
def product_b(seller_b, category_b):
    """Product in Seller B: cost 12.00, price 20.00, stock 5."""
    return make_product(seller_b.id, category_b.id, name="Product B", purchase=1200, selling=2000, stock=5)


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
def owner_a_headers(client, owner_a):
    return auth_headers(get_auth_token(client, owner_a.email))


@pytest.fixture(scope='function')
def operations_a_headers(client, operations_a):
    return auth_headers(get_auth_token(client, operations_a.email))


@pytest.fixture(scope='function')
def owner_b_headers(client, owner_b):
    return auth_headers(get_auth_token(client, owner_b.email))
