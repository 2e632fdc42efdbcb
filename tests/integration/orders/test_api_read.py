"""Integration tests for order list and retrieve endpoints.

Covers:
- List: own orders only, newest first, summary fields, pagination block.
- Limit clamping, page past the end, unknown status ignored.
- Filters: status and date range.
- Retrieve: owner, staff, stranger (404), malformed id (400).
- Authentication enforcement.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time

from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def _detail_url(order_id):
    return f"{ORDERS_URL}{order_id}/"


@pytest.fixture()
def make_order(shipping_address):
    def _make(user=None, status=OrderStatus.PENDING, **kwargs):
        return Order.objects.create(
            user=user,
            guest_session_id=None if user else "sess-x",
            status=status,
            shipping_address=shipping_address,
            **kwargs,
        )

    return _make


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


class TestListOrders:
    def test_requires_authentication(self, api_client):
        response = api_client.get(ORDERS_URL)
        assert response.status_code == 401

    def test_only_own_orders_newest_first(
        self, auth_client, user, other_user, make_order
    ):
        older = make_order(user=user)
        newer = make_order(user=user)
        make_order(user=other_user)
        make_order()

        response = auth_client.get(ORDERS_URL)

        assert response.status_code == 200
        body = response.json()
        assert [o["id"] for o in body["orders"]] == [newer.id, older.id]
        assert body["pagination"] == {
            "current_page": 1,
            "per_page": 10,
            "total": 2,
            "total_pages": 1,
            "has_next": False,
            "has_prev": False,
        }

    def test_summary_counts_items(
        self, auth_client, checkout, principal, user, make_product, add_to_cart
    ):
        add_to_cart(make_product(stock=9), 2, user=user)
        add_to_cart(make_product(stock=9), 3, user=user)
        order = checkout(principal)

        row = auth_client.get(ORDERS_URL).json()["orders"][0]

        assert row["order_number"] == order.order_number
        assert row["item_count"] == 2
        assert row["total_quantity"] == 5
        assert "shipping_address" not in row

    def test_empty(self, auth_client):
        body = auth_client.get(ORDERS_URL).json()
        assert body["orders"] == []
        assert body["pagination"]["total"] == 0
        assert body["pagination"]["total_pages"] == 0
        assert body["pagination"]["has_next"] is False

    def test_pagination(self, auth_client, user, make_order):
        for _ in range(5):
            make_order(user=user)

        body = auth_client.get(ORDERS_URL, {"page": 2, "limit": 2}).json()

        assert len(body["orders"]) == 2
        assert body["pagination"] == {
            "current_page": 2,
            "per_page": 2,
            "total": 5,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    def test_page_past_the_end(self, auth_client, user, make_order):
        make_order(user=user)
        body = auth_client.get(ORDERS_URL, {"page": 9}).json()
        assert body["orders"] == []
        assert body["pagination"]["has_prev"] is True

    @pytest.mark.parametrize("limit,expected", [(0, 1), (-3, 1), (500, 50)])
    def test_limit_is_clamped(self, auth_client, limit, expected):
        body = auth_client.get(ORDERS_URL, {"limit": limit}).json()
        assert body["pagination"]["per_page"] == expected

    def test_status_filter(self, auth_client, user, make_order):
        make_order(user=user)
        shipped = make_order(user=user, status=OrderStatus.SHIPPED)

        body = auth_client.get(ORDERS_URL, {"status": "shipped"}).json()

        assert [o["id"] for o in body["orders"]] == [shipped.id]

    def test_unknown_status_is_ignored(self, auth_client, user, make_order):
        make_order(user=user)
        make_order(user=user, status=OrderStatus.SHIPPED)

        body = auth_client.get(ORDERS_URL, {"status": "teleported"}).json()

        assert body["pagination"]["total"] == 2

    def test_date_range_filter(self, auth_client, user, make_order):
        with freeze_time("2026-01-10 03:00:00"):
            make_order(user=user)
        with freeze_time("2026-02-10 03:00:00"):
            february = make_order(user=user)

        body = auth_client.get(
            ORDERS_URL, {"start_date": "2026-02-01", "end_date": "2026-02-28"}
        ).json()

        assert [o["id"] for o in body["orders"]] == [february.id]


# ---------------------------------------------------------------------------
# Retrieve
# ---------------------------------------------------------------------------


class TestRetrieveOrder:
    @pytest.fixture()
    def order(self, checkout, principal, user, make_product, add_to_cart):
        add_to_cart(make_product(price="1000.00", stock=5), 2, user=user)
        return checkout(principal)

    def test_owner(self, auth_client, order):
        response = auth_client.get(_detail_url(order.id))

        assert response.status_code == 200
        body = response.json()
        assert body["order_number"] == order.order_number
        assert body["items"][0]["product_name"] == order.items.get().product_name
        assert body["items"][0]["final_price"] == "2000.00"
        assert body["estimated_delivery"] == str(
            timezone.localdate() + timedelta(days=7)
        )

    def test_staff(self, staff_client, order):
        assert staff_client.get(_detail_url(order.id)).status_code == 200

    def test_stranger_gets_404(self, api_client, other_user, order):
        api_client.force_authenticate(user=other_user)
        response = api_client.get(_detail_url(order.id))

        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_NOT_FOUND"

    def test_missing(self, auth_client):
        response = auth_client.get(_detail_url(999_999))
        assert response.status_code == 404

    def test_malformed_id(self, auth_client):
        response = auth_client.get(_detail_url("abc"))
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_ORDER_ID"

    def test_requires_authentication(self, api_client, order):
        assert api_client.get(_detail_url(order.id)).status_code == 401
