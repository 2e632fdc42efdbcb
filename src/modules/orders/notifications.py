"""Notification scheduling for order events.

The order core only inserts ``pending`` rows inside the caller's
transaction.  Delivery happens later in ``modules.orders.tasks``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from modules.orders.constants import (
    DEFAULT_NOTIFICATION_BODY,
    DEFAULT_NOTIFICATION_SUBJECT,
    NOTIFICATION_BODIES,
    NOTIFICATION_SUBJECTS,
    NotificationMethod,
    NotificationStatus,
)

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderNotification
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class NotificationScheduler:
    def __init__(
        self,
        order_repository: IOrderRepository,
        method: str = NotificationMethod.EMAIL,
    ) -> None:
        self._order_repo = order_repository
        self._method = method

    def schedule(
        self, order: Order, notification_type: str
    ) -> Optional[OrderNotification]:
        """Queue a notification, or return ``None`` when no email resolves.

        Guest orders without an email in the shipping address are skipped
        silently.
        """
        recipient = order.customer_email
        if not recipient:
            logger.info(
                "notification.skipped",
                order_id=order.id,
                type=notification_type,
                reason="no_recipient",
            )
            return None

        subject, content = render(order, notification_type)
        notification = self._order_repo.add_notification(
            order.id,
            type=notification_type,
            method=self._method,
            recipient=recipient,
            subject=subject[:255],
            content=content,
            status=NotificationStatus.PENDING,
        )
        logger.info(
            "notification.scheduled",
            order_id=order.id,
            notification_id=notification.id,
            type=notification_type,
        )
        return notification


def render(order: Order, notification_type: str) -> tuple[str, str]:
    context = {
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "status": order.get_status_display(),
    }
    subject = NOTIFICATION_SUBJECTS.get(notification_type, DEFAULT_NOTIFICATION_SUBJECT)
    body = NOTIFICATION_BODIES.get(notification_type, DEFAULT_NOTIFICATION_BODY)
    return subject.format(**context), body.format(**context)
