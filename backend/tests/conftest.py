"""
Pytest fixtures for the commerce backend tests.

Provides a fresh application per test (in-memory SQLite, mongomock document
store, SimpleCache), onboarded tenants with their owners, and helpers for
building catalog rows and request headers.
"""

import mongomock
import pytest

from commerce import create_app
from commerce.extensions import db
from commerce.models import PlatformAdmin, User
from commerce.services import products_service, tenant_service
from commerce.validation.schemas import tenant_onboarding_schema, validate


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'MONGO_CLIENT': mongomock.MongoClient(),
        'MONGO_DB_NAME': 'commerce_test',
        'CACHE_TYPE': 'SimpleCache',
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


def onboard(slug: str, *, plan: str = 'free', owner_email: str | None = None, status: str = 'active'):
    """Onboard a tenant through the same validation path as the platform API."""
    data = validate(tenant_onboarding_schema, {
        'slug': slug,
        'name': f'{slug.title()} Store',
        'plan': plan,
        'status': status,
        'ownerEmail': owner_email or f'owner@{slug}.test',
        'ownerName': f'{slug.title()} Owner',
    })
    return tenant_service.onboard_tenant(data)


@pytest.fixture(scope='function')
def tenant_a(app):
    """Tenant A (first merchant, free plan)."""
    return onboard('acme')


@pytest.fixture(scope='function')
def tenant_b(app):
    """Tenant B (second merchant, free plan)."""
    return onboard('beta')


def user_headers(user_id, **extra) -> dict:
    headers = {'X-User-Id': str(user_id)}
    headers.update(extra)
    return headers


@pytest.fixture(scope='function')
def owner_a_headers(tenant_a):
    return user_headers(tenant_a.owner_id)


@pytest.fixture(scope='function')
def owner_b_headers(tenant_b):
    return user_headers(tenant_b.owner_id)


@pytest.fixture(scope='function')
def platform_admin(app):
    """User with SUPER_ADMIN access to the platform API."""
    user = User(email='ops@platform.test', name='Ops', role='admin')
    db.session.add(user)
    db.session.flush()
    db.session.add(PlatformAdmin(user_id=user.id, role='SUPER_ADMIN'))
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def platform_headers(platform_admin):
    return user_headers(platform_admin.id)


def product_data(**overrides) -> dict:
    """Loaded (snake_case) product payload as the create schema would produce it."""
    data = {
        'name': 'Coffee Mug',
        'price': 12.5,
        'status': 'active',
        'visibility': 'public',
        'images': [],
        'categories': [],
        'tags': [],
        'inventory': {
            'track_quantity': True,
            'quantity': 10,
            'allow_backorder': False,
            'low_stock_threshold': 3,
        },
    }
    inventory = overrides.pop('inventory', None)
    if inventory is not None:
        data['inventory'] = {**data['inventory'], **inventory}
    data.update(overrides)
    return data


@pytest.fixture(scope='function')
def make_product():
    """Factory: make_product(tenant, **fields) -> Product."""
    def _make(tenant, **overrides):
        return products_service.create_product(tenant.id, product_data(**overrides), created_by='test')
    return _make


@pytest.fixture(scope='function')
def product_a(tenant_a, make_product):
    """Tracked, active product in Tenant A with 10 units."""
    return make_product(tenant_a, sku='MUG-A')


@pytest.fixture(scope='function')
def product_b(tenant_b, make_product):
    """Tracked, active product in Tenant B with 10 units."""
    return make_product(tenant_b, name='Tea Pot', price=30.0, sku='POT-B')


CUSTOMER = {'email': 'shopper@example.com', 'name': 'Sam Shopper'}
ADDRESS = {
    'name': 'Sam Shopper',
    'address1': '1 Main St',
    'city': 'Springfield',
    'state': 'IL',
    'zip': '62701',
    'country': 'US',
}


def order_payload(product, quantity: int = 1, **overrides) -> dict:
    """External (camelCase) order body for the admin order API."""
    line_total = round(product.price * quantity, 2)
    body = {
        'items': [{
            'productId': product.id,
            'name': product.name,
            'price': product.price,
            'quantity': quantity,
            'total': line_total,
        }],
        'subtotal': line_total,
        'total': line_total,
        'customer': dict(CUSTOMER),
        'shippingAddress': dict(ADDRESS),
        'billingAddress': dict(ADDRESS),
    }
    body.update(overrides)
    return body


def order_data(product, quantity: int = 1, **overrides) -> dict:
    """Loaded (snake_case) order payload for service-level calls."""
    return validate_order(order_payload(product, quantity, **overrides))


def validate_order(body: dict) -> dict:
    from commerce.validation.schemas import order_create_schema
    return validate(order_create_schema, body)
