"""Checkout: turn the principal's cart into a pending order.

Everything happens in one ``transaction.atomic`` block, so a failure at
any step leaves no order, no items, no stock change and an untouched
cart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.inventory.exceptions import InsufficientStock
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.exceptions import (
    EmptyCart,
    IdempotencyKeyReused,
    PrincipalRequired,
)
from modules.orders.pricing import (
    PricedLine,
    Totals,
    compute_totals,
    quantize,
    shipping_rate,
)

if TYPE_CHECKING:
    from modules.cart.dtos import CartLine
    from modules.cart.repositories.interfaces import ICartSource
    from modules.core.principal import Principal
    from modules.inventory.ledger import InventoryLedger
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.state_machine import OrderStatusStateMachine

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderPlacement:
    """Checkout outcome; ``created`` is ``False`` for an idempotent replay."""

    order: Order
    created: bool = True


class OrderCreationPipeline:
    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_source: ICartSource,
        ledger: InventoryLedger,
        state_machine: OrderStatusStateMachine,
    ) -> None:
        self._order_repo = order_repository
        self._cart = cart_source
        self._ledger = ledger
        self._state_machine = state_machine

    @transaction.atomic
    def run(self, principal: Principal, dto: CreateOrderDTO) -> OrderPlacement:
        """Create an order from the cart.

        Steps:
        1. Validate shipping method and principal; replay a known
           idempotency key.
        2. Read active cart lines (empty cart is rejected).
        3. Check live stock per line.
        4. Price the order.
        5. Insert the order (order number regenerated on collision).
        6. Snapshot the items.
        7. Decrement stock per line, sorted by product id.
        8. Clear the cart.
        9. Record the initial history entry and schedule a confirmation.

        Raises:
            InvalidShippingMethod, PrincipalRequired, EmptyCart,
            InsufficientStock, IdempotencyKeyReused, ProductNotFound.
        """
        log = logger.bind(
            user_id=principal.user_id,
            guest_session_id=principal.guest_session_id,
            shipping_method=dto.shipping_method,
        )
        log.info("order.creation_started")

        # 1. Validate input
        rate = shipping_rate(dto.shipping_method)
        if not principal.has_single_owner:
            raise PrincipalRequired()

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing is not None:
                return self._replay(principal, existing, dto.idempotency_key)

        # 2. Cart
        lines = self._cart.get_items(principal)
        if not lines:
            raise EmptyCart()

        # 3. Stock pre-check against the snapshot read with the cart
        for line in lines:
            if not line.has_enough_stock:
                raise _insufficient(line)

        # 4. Pricing
        totals = compute_totals(
            [PricedLine(line.unit_price, line.quantity) for line in lines],
            dto.shipping_method,
            dto.coupon_code,
        )

        # 5-6. Order + item snapshots
        order_data = self._order_data(principal, dto, totals)
        order_data["estimated_delivery"] = timezone.localdate() + timedelta(
            days=rate.delivery_days
        )
        order = self._insert(order_data, dto.idempotency_key)
        self._order_repo.add_items(order, lines)

        # 7. Stock; the conditional update is the authoritative check
        for line in sorted(lines, key=lambda ln: ln.product_id):
            self._ledger.decrement(
                line.product_id,
                line.quantity,
                reason=f"Order {order.order_number}",
                reference_id=order.id,
            )

        # 8. Cart
        self._cart.clear(principal)

        # 9. Audit + notification
        self._state_machine.record_creation(order, changed_by=principal)

        log.info(
            "order.created",
            order_id=order.id,
            order_number=order.order_number,
            total=str(order.total_amount),
            item_count=len(lines),
        )
        return OrderPlacement(self._order_repo.get_by_id(order.id) or order)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _replay(
        self, principal: Principal, existing: Order, key: str
    ) -> OrderPlacement:
        if not principal.owns(existing):
            raise IdempotencyKeyReused()
        logger.info("order.idempotency_hit", order_id=existing.id, key=key)
        return OrderPlacement(existing, created=False)

    def _insert(self, data: Dict[str, Any], key: Optional[str]) -> Order:
        try:
            return self._order_repo.create(data)
        except IntegrityError:
            # A concurrent request committed the same key first.
            if key and self._order_repo.get_by_idempotency_key(key) is not None:
                raise IdempotencyKeyReused(
                    "An order with this idempotency key was just created."
                ) from None
            raise

    @staticmethod
    def _order_data(
        principal: Principal, dto: CreateOrderDTO, totals: Totals
    ) -> Dict[str, Any]:
        return {
            "user_id": principal.user_id,
            "guest_session_id": (
                None if principal.user_id is not None else principal.guest_session_id
            ),
            "status": OrderStatus.PENDING,
            "subtotal": quantize(totals.subtotal),
            "coupon_code": totals.coupon_code,
            "coupon_discount": totals.coupon_discount,
            "discount_amount": totals.coupon_discount,
            "tax_amount": totals.tax_amount,
            "shipping_cost": totals.shipping_cost,
            "total_amount": quantize(totals.total),
            "currency": getattr(settings, "ORDER_CURRENCY", "JPY"),
            "payment_status": PaymentStatus.PENDING,
            "payment_method": dto.payment_method or "",
            "shipping_method": dto.shipping_method,
            "shipping_address": dto.shipping_address,
            "billing_address": dto.effective_billing_address,
            "notes": dto.notes or "",
            "idempotency_key": dto.idempotency_key,
        }


def _insufficient(line: CartLine) -> InsufficientStock:
    return InsufficientStock(
        f"Insufficient stock for {line.name}: "
        f"requested {line.quantity}, available {line.live_stock}.",
        details={
            "product_id": line.product_id,
            "product_name": line.name,
            "requested_quantity": line.quantity,
            "available_quantity": line.live_stock,
        },
    )
