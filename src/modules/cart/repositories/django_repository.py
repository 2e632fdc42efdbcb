"""Django ORM implementation of the cart source."""

from __future__ import annotations

from typing import List, Optional

import structlog

from modules.cart.dtos import CartLine
from modules.cart.models import CartItem
from modules.cart.repositories.interfaces import ICartSource
from modules.core.principal import Principal
from modules.products.models import ProductStatus

logger = structlog.get_logger(__name__)


class CartDjangoSource(ICartSource):
    """Cart source backed by the ``cart_items`` table."""

    def get_items(self, principal: Principal) -> List[CartLine]:
        """Cart lines joined with live product data, oldest first.

        Inactive products are filtered out here, so they never reach an
        order; their rows are still removed by ``clear``.
        """
        if principal.is_anonymous:
            return []
        rows = (
            CartItem.objects.select_related("product")
            .filter(
                **principal.owner_filter("user_id", "session_id"),
                product__status=ProductStatus.ACTIVE,
            )
            .order_by("created_at", "id")
        )
        return [CartLine.from_entity(row) for row in rows]

    def clear(self, principal: Principal) -> int:
        if principal.is_anonymous:
            return 0
        deleted, _ = CartItem.objects.filter(
            **principal.owner_filter("user_id", "session_id")
        ).delete()
        logger.info(
            "cart.cleared",
            user_id=principal.user_id,
            guest_session_id=principal.guest_session_id,
            removed=deleted,
        )
        return deleted

    def get_row_for_update(
        self, principal: Principal, product_id: int
    ) -> Optional[CartItem]:
        """Lock the principal's row for ``product_id`` (``None`` if absent)."""
        if principal.is_anonymous:
            return None
        return (
            CartItem.objects.select_for_update()
            .filter(
                **principal.owner_filter("user_id", "session_id"),
                product_id=product_id,
            )
            .first()
        )

    def add_row(self, principal: Principal, product_id: int, quantity: int) -> CartItem:
        return CartItem.objects.create(
            user_id=principal.user_id,
            session_id=None if principal.user_id else principal.guest_session_id,
            product_id=product_id,
            quantity=quantity,
        )
