"""Integration tests for order cancellation.

Covers:
- Stock restored for every item, with matching ``out``/``in`` movements.
- History row and status notification written.
- Second cancellation rejected with ``CANNOT_CANCEL``.
- Status update to ``cancelled`` by staff restores stock the same way.
- Someone else's order is reported as not found.
"""

from __future__ import annotations

import pytest

from modules.core.principal import Principal
from modules.inventory.ledger import InventoryLedger
from modules.inventory.models import InventoryMovement, MovementType
from modules.orders.constants import NotificationType, OrderStatus
from modules.orders.models import Order, OrderNotification, OrderStatusHistory

pytestmark = pytest.mark.integration


@pytest.fixture()
def products(make_product):
    return make_product(stock=5), make_product(stock=3)


@pytest.fixture()
def order(checkout, principal, user, products, add_to_cart):
    a, b = products
    add_to_cart(a, 2, user=user)
    add_to_cart(b, 3, user=user)
    return checkout(principal)


class TestCancel:
    def test_restores_stock(self, order_service, principal, order, products):
        result = order_service.cancel_order(principal, order.id)

        assert result.value.status == OrderStatus.CANCELLED
        a, b = products
        a.refresh_from_db()
        b.refresh_from_db()
        assert (a.stock_quantity, b.stock_quantity) == (5, 3)

    def test_movements_pair_up(self, order_service, principal, order, products):
        order_service.cancel_order(principal, order.id)

        movements = InventoryLedger().movements_for(order.id)
        outs = {
            (m.product_id, m.quantity)
            for m in movements
            if m.type == MovementType.OUT
        }
        ins = {
            (m.product_id, m.quantity)
            for m in movements
            if m.type == MovementType.IN
        }
        assert outs == ins == {(products[0].id, 2), (products[1].id, 3)}
        for product in products:
            assert InventoryLedger().net_movement(product.id) == 0

    def test_history_and_notification(self, order_service, principal, order):
        order_service.cancel_order(principal, order.id, reason="ordered twice")

        last = OrderStatusHistory.objects.filter(order=order).last()
        assert last.previous_status == OrderStatus.PENDING
        assert last.new_status == OrderStatus.CANCELLED
        assert last.comment == "ordered twice"
        assert last.changed_by == "user"
        assert OrderNotification.objects.filter(
            order=order, type=NotificationType.STATUS_UPDATE
        ).exists()

    def test_default_reason(self, order_service, principal, order):
        order_service.cancel_order(principal, order.id)
        last = OrderStatusHistory.objects.filter(order=order).last()
        assert last.comment == "User requested cancellation"

    def test_second_cancel_is_rejected(self, order_service, principal, order):
        order_service.cancel_order(principal, order.id)

        result = order_service.cancel_order(principal, order.id)

        assert result.error.code == "CANNOT_CANCEL"
        assert InventoryMovement.objects.filter(type=MovementType.IN).count() == 2

    def test_delivered_order_cannot_be_cancelled(
        self, order_service, principal, staff_principal, order
    ):
        order_service.update_status(staff_principal, order.id, OrderStatus.DELIVERED)

        result = order_service.cancel_order(principal, order.id)

        assert result.error.code == "CANNOT_CANCEL"
        order.refresh_from_db()
        assert order.status == OrderStatus.DELIVERED

    def test_stranger_sees_not_found(self, order_service, order, other_user):
        result = order_service.cancel_order(Principal.for_user(other_user.id), order.id)

        assert result.error.code == "ORDER_NOT_FOUND"
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PENDING

    def test_staff_can_cancel_any_order(self, order_service, staff_principal, order):
        result = order_service.cancel_order(staff_principal, order.id)
        assert result.value.status == OrderStatus.CANCELLED
        last = OrderStatusHistory.objects.filter(order=order).last()
        assert last.changed_by == "admin"

    def test_unknown_order(self, order_service, principal):
        assert order_service.cancel_order(principal, 999).error.code == (
            "ORDER_NOT_FOUND"
        )


class TestCancelThroughStatusUpdate:
    def test_restores_stock(self, order_service, staff_principal, order, products):
        result = order_service.update_status(
            staff_principal, order.id, OrderStatus.CANCELLED, comment="fraud"
        )

        assert result.value.status == OrderStatus.CANCELLED
        for product, expected in zip(products, (5, 3)):
            product.refresh_from_db()
            assert product.stock_quantity == expected

    def test_after_processing(self, order_service, staff_principal, order, products):
        order_service.update_status(staff_principal, order.id, OrderStatus.PROCESSING)
        order_service.update_status(staff_principal, order.id, OrderStatus.CANCELLED)

        assert InventoryMovement.objects.filter(type=MovementType.IN).count() == 2
        products[0].refresh_from_db()
        assert products[0].stock_quantity == 5
