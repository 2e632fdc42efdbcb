"""Integration tests for idempotent order creation.

Covers:
- Same key, same principal: the first order is returned, nothing new is
  written (HTTP 200 instead of 201).
- Same key, different principal: ``IDEMPOTENCY_KEY_REUSED``.
- A concurrent insert that wins the unique index on the key.
- Requests without a key are never deduplicated.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from modules.core.principal import Principal
from modules.inventory.models import InventoryMovement
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"
KEY = "9d6c2f5e-idem-0001"


@pytest.fixture()
def dto(shipping_address):
    return CreateOrderDTO(
        shipping_method="standard",
        shipping_address=shipping_address,
        idempotency_key=KEY,
    )


class TestServiceLevel:
    def test_replay_returns_first_order(
        self, order_service, principal, user, dto, make_product, add_to_cart
    ):
        product = make_product(stock=5)
        add_to_cart(product, 2, user=user)

        first = order_service.create_order(principal, dto).unwrap()
        add_to_cart(product, 1, user=user)
        second = order_service.create_order(principal, dto).unwrap()

        assert first.created
        assert not second.created
        assert second.order.id == first.order.id
        assert Order.objects.count() == 1
        assert InventoryMovement.objects.count() == 1
        product.refresh_from_db()
        assert product.stock_quantity == 3

    def test_replay_skips_cart_checks(
        self, order_service, principal, user, dto, make_product, add_to_cart
    ):
        add_to_cart(make_product(), 1, user=user)
        first = order_service.create_order(principal, dto).unwrap()

        # Cart is now empty; a replay must still succeed.
        replay = order_service.create_order(principal, dto).unwrap()

        assert replay.order.id == first.order.id

    def test_key_of_another_principal(
        self,
        order_service,
        principal,
        user,
        other_user,
        dto,
        make_product,
        add_to_cart,
    ):
        add_to_cart(make_product(), 1, user=user)
        order_service.create_order(principal, dto).unwrap()
        add_to_cart(make_product(), 1, user=other_user)

        result = order_service.create_order(Principal.for_user(other_user.id), dto)

        assert result.error.code == "IDEMPOTENCY_KEY_REUSED"
        assert Order.objects.count() == 1

    def test_concurrent_insert_with_same_key(
        self,
        order_service,
        principal,
        user,
        other_user,
        dto,
        make_product,
        add_to_cart,
        shipping_address,
    ):
        """The key was free when checked, taken by the time of the insert."""
        add_to_cart(make_product(), 1, user=user)
        winner = Order.objects.create(
            user=other_user, shipping_address=shipping_address, idempotency_key=KEY
        )
        real_lookup = OrderDjangoRepository.get_by_idempotency_key
        calls = []

        def lookup(repo, key):
            calls.append(key)
            if len(calls) == 1:
                return None
            return real_lookup(repo, key)

        with patch.object(OrderDjangoRepository, "get_by_idempotency_key", lookup):
            result = order_service.create_order(principal, dto)

        assert result.error.code == "IDEMPOTENCY_KEY_REUSED"
        assert list(Order.objects.values_list("id", flat=True)) == [winner.id]
        assert InventoryMovement.objects.count() == 0

    def test_without_key_orders_are_distinct(
        self, checkout, principal, user, make_product, add_to_cart
    ):
        product = make_product(stock=5)
        add_to_cart(product, 1, user=user)
        first = checkout(principal)
        add_to_cart(product, 1, user=user)
        second = checkout(principal)

        assert first.id != second.id
        assert first.idempotency_key is None
        assert second.idempotency_key is None


class TestApiLevel:
    def _post(self, client, shipping_address, key=KEY):
        return client.post(
            ORDERS_URL,
            {"shipping_method": "standard", "shipping_address": shipping_address},
            format="json",
            HTTP_IDEMPOTENCY_KEY=key,
        )

    def test_replay_returns_200(
        self, auth_client, user, shipping_address, make_product, add_to_cart
    ):
        add_to_cart(make_product(), 1, user=user)

        first = self._post(auth_client, shipping_address)
        second = self._post(auth_client, shipping_address)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["order_number"] == first.json()["order_number"]

    def test_reused_key_returns_400(
        self,
        auth_client,
        api_client,
        user,
        shipping_address,
        make_product,
        add_to_cart,
    ):
        add_to_cart(make_product(), 1, user=user)
        assert self._post(auth_client, shipping_address).status_code == 201

        add_to_cart(make_product(), 1, session_id="sess-other")
        response = api_client.post(
            ORDERS_URL,
            {
                "shipping_method": "standard",
                "shipping_address": shipping_address,
                "guest_session_id": "sess-other",
            },
            format="json",
            HTTP_IDEMPOTENCY_KEY=KEY,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "IDEMPOTENCY_KEY_REUSED"
