"""Integration tests for status updates and cancellation over HTTP.

PUT /api/v1/orders/{id}/status/ is staff-only; DELETE /api/v1/orders/{id}/
cancels an order the caller can see.
"""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import OrderStatusHistory

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def _status_url(order_id):
    return f"{ORDERS_URL}{order_id}/status/"


def _detail_url(order_id):
    return f"{ORDERS_URL}{order_id}/"


@pytest.fixture()
def product(make_product):
    return make_product(price="1000.00", stock=5)


@pytest.fixture()
def order(checkout, principal, user, product, add_to_cart):
    add_to_cart(product, 2, user=user)
    return checkout(principal)


class TestUpdateStatus:
    def test_staff_moves_order_forward(self, staff_client, order):
        response = staff_client.put(
            _status_url(order.id),
            {"status": "processing", "comment": "picked"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["status"] == "processing"
        last = OrderStatusHistory.objects.filter(order=order).last()
        assert last.comment == "picked"
        assert last.changed_by == "admin"

    def test_shipped_sets_timestamp(self, staff_client, order):
        response = staff_client.put(
            _status_url(order.id), {"status": "shipped"}, format="json"
        )

        body = response.json()
        assert body["status"] == "shipped"
        assert body["shipped_at"] is not None
        assert body["delivered_at"] is None

    def test_delivered_sets_timestamp(self, staff_client, order):
        response = staff_client.put(
            _status_url(order.id), {"status": "delivered"}, format="json"
        )
        assert response.json()["delivered_at"] is not None

    def test_owner_is_not_staff(self, auth_client, order):
        response = auth_client.put(
            _status_url(order.id), {"status": "shipped"}, format="json"
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "ACCESS_DENIED"
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_non_staff_denied_before_lookup(self, auth_client):
        response = auth_client.put(
            _status_url(999_999), {"status": "shipped"}, format="json"
        )
        assert response.status_code == 403

    def test_unknown_status(self, staff_client, order):
        response = staff_client.put(
            _status_url(order.id), {"status": "teleported"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_STATUS"

    def test_same_status(self, staff_client, order):
        response = staff_client.put(
            _status_url(order.id), {"status": "pending"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "STATUS_UNCHANGED"

    def test_terminal_order_is_locked(self, staff_client, order):
        staff_client.put(_status_url(order.id), {"status": "delivered"}, format="json")

        response = staff_client.put(
            _status_url(order.id), {"status": "processing"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_STATUS_TRANSITION"

    def test_missing_order(self, staff_client):
        response = staff_client.put(
            _status_url(999_999), {"status": "shipped"}, format="json"
        )
        assert response.status_code == 404

    def test_status_is_required(self, staff_client, order):
        response = staff_client.put(_status_url(order.id), {}, format="json")

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "status"


class TestCancelOverHttp:
    def test_owner_cancels(self, auth_client, order, product):
        response = auth_client.delete(
            _detail_url(order.id), {"reason": "changed my mind"}, format="json"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["detail"] == "Order cancelled."
        assert body["order"]["status"] == "cancelled"
        product.refresh_from_db()
        assert product.stock_quantity == 5

    def test_without_body(self, auth_client, order):
        response = auth_client.delete(_detail_url(order.id))

        assert response.status_code == 200
        last = OrderStatusHistory.objects.filter(order=order).last()
        assert last.comment == "User requested cancellation"

    def test_twice(self, auth_client, order):
        auth_client.delete(_detail_url(order.id))

        response = auth_client.delete(_detail_url(order.id))

        assert response.status_code == 400
        assert response.json()["error_code"] == "CANNOT_CANCEL"
        assert response.json()["details"]["current_status"] == "cancelled"

    def test_stranger(self, api_client, other_user, order):
        api_client.force_authenticate(user=other_user)

        response = api_client.delete(_detail_url(order.id))

        assert response.status_code == 404
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
