from __future__ import annotations

import pytest

from modules.orders.constants import (
    NotificationMethod,
    NotificationStatus,
    NotificationType,
    OrderStatus,
)
from modules.orders.models import Order, OrderNotification
from modules.orders.notifications import NotificationScheduler, render
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def scheduler():
    return NotificationScheduler(OrderDjangoRepository())


@pytest.fixture()
def order(user, shipping_address):
    return Order.objects.create(user=user, shipping_address=shipping_address)


class TestRender:
    def test_confirmation(self, order):
        subject, body = render(order, NotificationType.CONFIRMATION)
        assert subject == f"Thank you for your order - Order {order.order_number}"
        assert body.startswith("Dear Hanako Yamada,")
        assert order.order_number in body

    def test_status_update_mentions_status(self, order):
        order.status = OrderStatus.SHIPPED
        subject, body = render(order, NotificationType.STATUS_UPDATE)
        assert subject == f"Order status updated - Order {order.order_number}"
        assert "Shipped" in body

    def test_unknown_type_uses_default(self, order):
        subject, body = render(order, "unknown")
        assert order.order_number in subject
        assert order.order_number in body


class TestSchedule:
    def test_creates_pending_email(self, scheduler, order):
        notification = scheduler.schedule(order, NotificationType.CONFIRMATION)

        assert notification is not None
        notification.refresh_from_db()
        assert notification.order_id == order.id
        assert notification.status == NotificationStatus.PENDING
        assert notification.method == NotificationMethod.EMAIL
        assert notification.recipient == "buyer@example.com"
        assert notification.attempts == 0

    def test_guest_email_from_shipping_address(self, scheduler, shipping_address):
        order = Order.objects.create(
            guest_session_id="sess-1",
            shipping_address={**shipping_address, "email": "guest@example.com"},
        )
        notification = scheduler.schedule(order, NotificationType.CONFIRMATION)
        assert notification.recipient == "guest@example.com"

    def test_no_recipient_is_skipped(self, scheduler, shipping_address):
        order = Order.objects.create(
            guest_session_id="sess-1", shipping_address=shipping_address
        )
        assert scheduler.schedule(order, NotificationType.CONFIRMATION) is None
        assert not OrderNotification.objects.exists()

    def test_configured_method(self, order):
        scheduler = NotificationScheduler(
            OrderDjangoRepository(), method=NotificationMethod.SMS
        )
        notification = scheduler.schedule(order, NotificationType.STATUS_UPDATE)
        assert notification.method == NotificationMethod.SMS
