"""Order service layer (use cases).

``OrderService`` is the boundary between the API and the order core.
Every public method returns a ``Result``:

- ``Success(value)`` when the use case completed;
- ``Failure(DomainError)`` when a business rule rejected it or storage
  failed (``DatabaseError`` is logged and wrapped in ``PersistenceError``).

Inside, rules raise at the point of detection so ``transaction.atomic``
rolls the unit of work back; conversion to ``Failure`` happens only here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import DatabaseError, transaction

from modules.cart.repositories.django_repository import CartDjangoSource
from modules.core.exceptions import DomainError, PersistenceError
from modules.inventory.ledger import InventoryLedger
from modules.orders.constants import DEFAULT_CANCEL_REASON, OrderStatus
from modules.orders.exceptions import (
    CannotCancel,
    InvalidOrderId,
    OrderAccessDenied,
    OrderNotFound,
    PrincipalRequired,
)
from modules.orders.notifications import NotificationScheduler
from modules.orders.pipeline import OrderCreationPipeline, OrderPlacement
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.state_machine import OrderStatusStateMachine
from shared.domain.result import Failure, Result, Success

if TYPE_CHECKING:
    from modules.core.principal import Principal
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order, OrderStatusHistory
    from modules.orders.repositories.interfaces import IOrderRepository, OrderPage

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use cases.

    Receives its collaborators via constructor injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        pipeline: OrderCreationPipeline,
        state_machine: OrderStatusStateMachine,
    ) -> None:
        self._order_repo = order_repository
        self._pipeline = pipeline
        self._state_machine = state_machine

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(
        self, principal: Principal, dto: CreateOrderDTO
    ) -> Result[OrderPlacement, DomainError]:
        return self._execute(
            "order.create",
            lambda: self._pipeline.run(principal, dto),
            shipping_method=dto.shipping_method,
            user_id=principal.user_id,
            guest_session_id=principal.guest_session_id,
        )

    def update_status(
        self,
        principal: Principal,
        order_id: Any,
        new_status: str,
        comment: str = "",
    ) -> Result[Order, DomainError]:
        return self._execute(
            "order.update_status",
            lambda: self._update_status(principal, order_id, new_status, comment),
            order_id=order_id,
            new_status=new_status,
        )

    def cancel_order(
        self,
        principal: Principal,
        order_id: Any,
        reason: Optional[str] = None,
    ) -> Result[Order, DomainError]:
        return self._execute(
            "order.cancel",
            lambda: self._cancel(principal, order_id, reason),
            order_id=order_id,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_orders(
        self,
        principal: Principal,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Result[OrderPage, DomainError]:
        """Owner-scoped page of order summaries.

        ``limit`` is clamped to ``1..ORDERS_MAX_PAGE_SIZE`` and ``page`` to
        at least 1.  An unknown ``status`` is ignored.
        """

        def query() -> OrderPage:
            if principal.is_anonymous:
                raise PrincipalRequired()
            criteria = dict(filters or {})
            if status in OrderStatus.values:
                criteria["status"] = status
            return self._order_repo.list_for_principal(
                principal,
                page=max(1, page or 1),
                limit=clamp_limit(limit),
                filters=criteria,
            )

        return self._execute("order.list", query, page=page, limit=limit)

    def get_order(
        self, principal: Principal, order_id: Any
    ) -> Result[Order, DomainError]:
        """Full order; someone else's order is reported as not found."""

        def query() -> Order:
            order = self._order_repo.get_by_id(parse_order_id(order_id))
            if order is None or not principal.can_access(order):
                raise OrderNotFound()
            return order

        return self._execute("order.get", query, order_id=order_id)

    def get_history(
        self, principal: Principal, order_id: Any
    ) -> Result[List[OrderStatusHistory], DomainError]:
        def query() -> List[OrderStatusHistory]:
            order = self._order_repo.get_by_id(parse_order_id(order_id))
            if order is None:
                raise OrderNotFound()
            if not principal.can_access(order):
                raise OrderAccessDenied()
            return self._order_repo.history(order.id)

        return self._execute("order.history", query, order_id=order_id)

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    @transaction.atomic
    def _update_status(
        self, principal: Principal, order_id: Any, new_status: str, comment: str
    ) -> Order:
        if not principal.is_privileged:
            raise OrderAccessDenied("Admin access required.")
        pk = parse_order_id(order_id)
        order = self._order_repo.get_for_update(pk)
        if order is None:
            raise OrderNotFound()
        self._state_machine.transition(
            order, new_status, comment=comment, changed_by=principal
        )
        return self._order_repo.get_by_id(pk) or order

    @transaction.atomic
    def _cancel(
        self, principal: Principal, order_id: Any, reason: Optional[str]
    ) -> Order:
        pk = parse_order_id(order_id)
        order = self._order_repo.get_for_update(pk)
        if order is None or not principal.can_access(order):
            raise OrderNotFound()
        if order.is_terminal:
            raise CannotCancel(
                f"Cannot cancel an order that is {order.status}.",
                details={"current_status": order.status},
            )
        self._state_machine.transition(
            order,
            OrderStatus.CANCELLED,
            comment=reason or DEFAULT_CANCEL_REASON,
            changed_by=principal,
        )
        logger.info("order.cancelled", order_id=pk)
        return self._order_repo.get_by_id(pk) or order

    def _execute(
        self, operation: str, fn: Callable[[], Any], **params: Any
    ) -> Result[Any, DomainError]:
        try:
            return Success(fn())
        except PersistenceError as exc:
            logger.exception(
                "order.database_error",
                operation=operation,
                params=params,
                source=exc.operation,
                detail=exc.params,
            )
            return Failure(exc)
        except DomainError as exc:
            logger.info(
                "order.operation_rejected",
                operation=operation,
                code=exc.code,
                **params,
            )
            return Failure(exc)
        except DatabaseError as exc:
            logger.exception(
                "order.database_error",
                operation=operation,
                params=params,
            )
            error = PersistenceError(cause=exc, operation=operation, params=params)
            error.__cause__ = exc
            return Failure(error)


def parse_order_id(value: Any) -> int:
    """Positive integer id, else ``InvalidOrderId``."""
    if isinstance(value, bool):
        raise InvalidOrderId()
    try:
        pk = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidOrderId() from None
    if pk < 1:
        raise InvalidOrderId()
    return pk


def clamp_limit(limit: Optional[int]) -> int:
    default = getattr(settings, "ORDERS_DEFAULT_PAGE_SIZE", 10)
    maximum = getattr(settings, "ORDERS_MAX_PAGE_SIZE", 50)
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def build_order_service() -> OrderService:
    """Wire the service with the Django-backed collaborators."""
    order_repository = OrderDjangoRepository()
    ledger = InventoryLedger()
    state_machine = OrderStatusStateMachine(
        order_repository=order_repository,
        ledger=ledger,
        scheduler=NotificationScheduler(order_repository),
    )
    pipeline = OrderCreationPipeline(
        order_repository=order_repository,
        cart_source=CartDjangoSource(),
        ledger=ledger,
        state_machine=state_machine,
    )
    return OrderService(
        order_repository=order_repository,
        pipeline=pipeline,
        state_machine=state_machine,
    )
