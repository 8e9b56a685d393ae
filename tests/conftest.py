"""
Global pytest Configuration and Fixtures

Flask application, test client and collaborator fixtures shared by the unit
and integration suites. Collaborators are pytest-mock doubles registered
through ``CatalogServices``; the authenticated caller is supplied by a user
loader so no authentication layer is needed.
"""

import pytest

import structlog

from catalog_gateway.app import create_app
from catalog_gateway.auth.decorators import AuthenticatedUser
from catalog_gateway.business.services import CatalogServices

logger = structlog.get_logger("tests.conftest")

TENANT_ID = 'b6a3e1f2-7c4d-4a9b-8e2f-0d1c2b3a4e5f'
USER_ID = 'c1d2e3f4-a5b6-4c7d-a8e9-f0a1b2c3d4e5'
CATEGORY_ID = 'd4c3b2a1-0f9e-4d8c-a7b6-a5f4e3d2c1b0'
CUSTOMER_ID = '0f9e8d7c-6b5a-4948-b7a6-958473625140'
PRODUCT_ID = '11111111-2222-4333-8444-555555555555'
OTHER_PRODUCT_ID = 'aaaaaaaa-bbbb-4ccc-9ddd-eeeeeeeeeeee'


# ============================================================================
# IDENTIFIERS
# ============================================================================

@pytest.fixture
def tenant_id():
    return TENANT_ID


@pytest.fixture
def ids():
    """Valid UUID v4 identifiers for payloads."""
    return {
        'tenant': TENANT_ID,
        'user': USER_ID,
        'category': CATEGORY_ID,
        'customer': CUSTOMER_ID,
        'product': PRODUCT_ID,
        'other_product': OTHER_PRODUCT_ID,
    }


# ============================================================================
# COLLABORATORS AND APPLICATION
# ============================================================================

@pytest.fixture
def authenticated_user():
    return AuthenticatedUser(user_id=USER_ID, tenant_id=TENANT_ID)


@pytest.fixture
def search_backend(mocker):
    backend = mocker.Mock(spec=['search_products'])
    backend.search_products.return_value = {'items': [], 'total': 0}
    return backend


@pytest.fixture
def recommendation_backend(mocker):
    backend = mocker.Mock(spec=['get_product_recommendations'])
    backend.get_product_recommendations.return_value = [{'product_id': OTHER_PRODUCT_ID}]
    return backend


@pytest.fixture
def catalog_store(mocker):
    store = mocker.Mock(spec=['create_product', 'create_order', 'create_customer'])
    store.create_product.return_value = {'id': PRODUCT_ID}
    store.create_order.return_value = {'id': 'order-1'}
    store.create_customer.return_value = {'id': CUSTOMER_ID}
    return store


@pytest.fixture
def catalog_services(search_backend, recommendation_backend, catalog_store, authenticated_user):
    return CatalogServices(
        search=search_backend,
        recommendations=recommendation_backend,
        store=catalog_store,
        user_loader=lambda: authenticated_user,
    )


@pytest.fixture
def app(catalog_services):
    """Testing application wired to the mocked collaborators."""
    application = create_app('testing', services=catalog_services)
    yield application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def anonymous_client(search_backend, recommendation_backend, catalog_store):
    """Client of an application whose user loader finds no caller."""
    services = CatalogServices(
        search=search_backend,
        recommendations=recommendation_backend,
        store=catalog_store,
        user_loader=lambda: None,
    )
    return create_app('testing', services=services).test_client()


# ============================================================================
# PAYLOADS
# ============================================================================

@pytest.fixture
def address_payload():
    return {
        'street': '221B Baker Street',
        'city': 'London',
        'state': 'Greater London',
        'postal_code': 'NW1 6XE',
        'country': 'GB',
        'phone': '+442079460000',
    }


@pytest.fixture
def product_payload():
    return {
        'name': 'Desk Lamp',
        'description': 'Adjustable LED desk lamp',
        'sku': 'LAMP2024',
        'price': 49.99,
        'stock_quantity': 12,
        'categories': [CATEGORY_ID],
        'attributes': {'color': ['black', 'white']},
        'images': ['https://cdn.shop.io/lamp.png'],
        'metadata': {'supplier': {'id': 7, 'tags': ['lighting']}},
    }


@pytest.fixture
def order_payload(address_payload):
    return {
        'customer_id': CUSTOMER_ID,
        'billing_address': dict(address_payload),
        'shipping_address': dict(address_payload),
        'items': [
            {'product_id': PRODUCT_ID, 'quantity': 2, 'unit_price': 49.99},
            {'product_id': OTHER_PRODUCT_ID, 'quantity': 1, 'unit_price': 5},
        ],
        'payment_method': 'CREDIT_CARD',
        'shipping_method': 'EXPRESS',
        'notes': 'Leave at the door',
    }


@pytest.fixture
def customer_payload(address_payload):
    return {
        'email': 'jane.doe@acme-mail.com',
        'first_name': 'Jane',
        'last_name': 'Doe',
        'phone': '+14155552671',
        'default_address': dict(address_payload),
    }
