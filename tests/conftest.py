import itertools
from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.cart.models import CartItem
from modules.core.principal import Principal
from modules.orders.services import build_order_service
from modules.products.models import Product, ProductStatus

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users and principals
# ---------------------------------------------------------------------------


@pytest.fixture()
def user():
    return User.objects.create_user(
        username="buyer",
        password="testpass123",
        email="buyer@example.com",
        first_name="Hanako",
        last_name="Yamada",
    )


@pytest.fixture()
def other_user():
    return User.objects.create_user(
        username="other",
        password="testpass123",
        email="other@example.com",
    )


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="staff",
        password="testpass123",
        email="staff@example.com",
        is_staff=True,
    )


@pytest.fixture()
def principal(user):
    return Principal.for_user(user.id, email=user.email)


@pytest.fixture()
def staff_principal(staff_user):
    return Principal.for_user(staff_user.id, is_privileged=True)


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated regular user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


# ---------------------------------------------------------------------------
# Catalog, cart and checkout helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    counter = itertools.count(1)

    def _make(price="1000.00", stock=5, status=ProductStatus.ACTIVE, **kwargs):
        n = next(counter)
        kwargs.setdefault("sku", f"SKU-{n:03d}")
        kwargs.setdefault("name", f"Product {n}")
        return Product.objects.create(
            price=Decimal(price),
            stock_quantity=stock,
            status=status,
            **kwargs,
        )

    return _make


@pytest.fixture()
def add_to_cart():
    def _add(product, quantity, user=None, session_id=None):
        return CartItem.objects.create(
            user=user,
            session_id=session_id,
            product=product,
            quantity=quantity,
        )

    return _add


@pytest.fixture()
def shipping_address():
    return {
        "name": "Hanako Yamada",
        "postal_code": "100-0001",
        "prefecture": "Tokyo",
        "city": "Chiyoda",
        "line1": "1-1 Marunouchi",
    }


@pytest.fixture()
def order_service():
    return build_order_service()


@pytest.fixture()
def checkout(order_service, shipping_address):
    """Place an order from the principal's cart and return it."""
    from modules.orders.dtos import CreateOrderDTO

    def _checkout(principal, shipping_method="standard", **kwargs):
        kwargs.setdefault("shipping_address", shipping_address)
        dto = CreateOrderDTO(shipping_method=shipping_method, **kwargs)
        return order_service.create_order(principal, dto).unwrap().order

    return _checkout
