"""Order status state machine.

Rules, checked in this order:

1. the target must be a known ``OrderStatus`` (``INVALID_STATUS``);
2. the target must differ from the current status (``STATUS_UNCHANGED``);
3. delivered, cancelled and refunded orders never change again
   (``CANNOT_CANCEL`` for a cancellation, ``INVALID_STATUS_TRANSITION``
   otherwise).

Between non-terminal states every move is allowed, backwards included.

Side effects of a transition:

- ``shipped`` stamps ``shipped_at``, ``delivered`` stamps ``delivered_at``;
- ``cancelled`` restores the stock of every item through the ledger;
- one history row and one ``status_update`` notification are written.

All of it must run inside the caller's transaction with the order row
locked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog
from django.utils import timezone

from modules.orders.constants import (
    ORDER_CREATED_COMMENT,
    NotificationType,
    OrderStatus,
)
from modules.orders.exceptions import (
    CannotCancel,
    InvalidStatus,
    InvalidStatusTransition,
    StatusUnchanged,
)

if TYPE_CHECKING:
    from modules.core.principal import Principal
    from modules.inventory.ledger import InventoryLedger
    from modules.orders.models import Order
    from modules.orders.notifications import NotificationScheduler
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderStatusStateMachine:
    def __init__(
        self,
        order_repository: IOrderRepository,
        ledger: InventoryLedger,
        scheduler: NotificationScheduler,
    ) -> None:
        self._order_repo = order_repository
        self._ledger = ledger
        self._scheduler = scheduler

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, order: Order, new_status: str) -> None:
        if new_status not in OrderStatus.values:
            raise InvalidStatus(
                f"Invalid order status: {new_status!r}.",
                details={"allowed": list(OrderStatus.values)},
            )
        if new_status == order.status:
            raise StatusUnchanged(f"Order is already {order.status}.")
        if not order.can_transition_to(new_status):
            details = {"current_status": order.status, "requested_status": new_status}
            if new_status == OrderStatus.CANCELLED:
                raise CannotCancel(
                    f"Cannot cancel an order that is {order.status}.",
                    details=details,
                )
            raise InvalidStatusTransition(
                f"Cannot change status of an order that is {order.status}.",
                details=details,
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(
        self,
        order: Order,
        new_status: str,
        *,
        comment: str = "",
        changed_by: Optional[Principal] = None,
    ) -> Order:
        self.validate(order, new_status)

        previous_status = order.status
        log = logger.bind(
            order_id=order.id,
            previous_status=previous_status,
            new_status=new_status,
        )

        order.status = new_status
        fields = ["status"]
        if new_status == OrderStatus.SHIPPED:
            order.shipped_at = timezone.now()
            fields.append("shipped_at")
        elif new_status == OrderStatus.DELIVERED:
            order.delivered_at = timezone.now()
            fields.append("delivered_at")
        self._order_repo.save(order, update_fields=fields)

        if new_status == OrderStatus.CANCELLED:
            self._restore_stock(order)

        self._order_repo.add_history(
            order.id,
            new_status,
            previous_status=previous_status,
            comment=comment,
            changed_by=changed_by,
        )
        self._scheduler.schedule(order, NotificationType.STATUS_UPDATE)

        log.info("order.status_updated")
        return order

    def record_creation(
        self, order: Order, changed_by: Optional[Principal] = None
    ) -> None:
        """Initial ``None -> pending`` entry plus the confirmation notice."""
        self._order_repo.add_history(
            order.id,
            order.status,
            previous_status=None,
            comment=ORDER_CREATED_COMMENT,
            changed_by=changed_by,
        )
        self._scheduler.schedule(order, NotificationType.CONFIRMATION)

    def _restore_stock(self, order: Order) -> None:
        for item in order.items.order_by("product_id"):
            self._ledger.restore(
                item.product_id,
                item.quantity,
                reason=f"Order {order.order_number} cancelled",
                reference_id=order.id,
            )
        logger.info("order.stock_restored", order_id=order.id)
