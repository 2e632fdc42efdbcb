"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
creation with a collision-safe order number, item snapshots, the status
audit trail, notifications, paginated owner-scoped listing and
idempotency-key look-up.

Services depend on this contract only.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.cart.dtos import CartLine
    from modules.core.principal import Principal
    from modules.orders.dtos import PaginationDTO
    from modules.orders.models import (
        Order,
        OrderItem,
        OrderNotification,
        OrderStatusHistory,
    )


@dataclass(frozen=True)
class OrderPage:
    orders: List[Order]
    pagination: PaginationDTO
    filters: Dict[str, Any] = field(default_factory=dict)


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Insert an order row, assigning a unique ``order_number``.

        Must run inside a transaction.  A collision on ``order_number``
        regenerates the number and retries.
        """

    @abstractmethod
    def add_items(self, order: Order, lines: Sequence[CartLine]) -> List[OrderItem]:
        """Persist item snapshots for ``lines``."""

    @abstractmethod
    def get_for_update(self, id: int) -> Optional[Order]:
        """Retrieve an order with a row-level lock."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def list_for_principal(
        self,
        principal: Principal,
        page: int,
        limit: int,
        filters: Optional[Dict[str, Any]] = None,
    ) -> OrderPage:
        """Owner-scoped, newest-first page of orders with item aggregates."""

    @abstractmethod
    def add_history(
        self,
        order_id: int,
        new_status: str,
        previous_status: Optional[str] = None,
        comment: str = "",
        changed_by: Optional[Principal] = None,
    ) -> OrderStatusHistory:
        """Append a status change to the order's audit trail."""

    @abstractmethod
    def history(self, order_id: int) -> List[OrderStatusHistory]:
        """Audit trail of an order, oldest first."""

    @abstractmethod
    def add_notification(self, order_id: int, **fields: Any) -> OrderNotification:
        """Insert a pending notification row."""
