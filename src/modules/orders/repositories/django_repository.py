"""Django ORM implementation of the Order repository.

Write methods expect to run inside the caller's ``transaction.atomic``
block; the service layer owns the unit of work.  Order-number uniqueness
is enforced by the unique index and resolved here by regenerating the
number inside a savepoint.

Look-ups follow the Null Object pattern and return ``None`` for missing
or malformed ids.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.core.paginator import EmptyPage, Paginator
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum, Value
from django.db.models.functions import Coalesce

from modules.cart.dtos import CartLine
from modules.core.exceptions import PersistenceError
from modules.core.principal import Principal
from modules.orders.constants import ORDER_NUMBER_MAX_RETRIES
from modules.orders.dtos import PaginationDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import (
    Order,
    OrderItem,
    OrderNotification,
    OrderStatusHistory,
)
from modules.orders.repositories.interfaces import IOrderRepository, OrderPage

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Order:
        """Insert the order, regenerating ``order_number`` on collision.

        Each attempt runs in its own savepoint so a failed insert leaves
        the enclosing transaction usable.

        Raises:
            PersistenceError: no free number after
                ``ORDER_NUMBER_MAX_RETRIES`` attempts.
            IntegrityError: any other constraint violation (for example a
                concurrent insert with the same idempotency key).
        """
        for attempt in range(1, ORDER_NUMBER_MAX_RETRIES + 1):
            order = Order(**data)
            order.order_number = Order.generate_order_number()
            try:
                with transaction.atomic():
                    order.save(force_insert=True)
            except IntegrityError:
                if not Order.objects.filter(order_number=order.order_number).exists():
                    raise
                logger.warning(
                    "order.number_collision",
                    order_number=order.order_number,
                    attempt=attempt,
                )
                continue
            logger.info(
                "order.persisted",
                order_id=order.id,
                order_number=order.order_number,
            )
            return order

        raise PersistenceError(
            "Could not allocate a unique order number.",
            operation="order.create",
            params={"attempts": ORDER_NUMBER_MAX_RETRIES},
        )

    def add_items(self, order: Order, lines: Sequence[CartLine]) -> List[OrderItem]:
        items = []
        for line in lines:
            item = OrderItem(
                order=order,
                product_id=line.product_id,
                product_name=line.name,
                product_sku=line.sku,
                product_image_url=line.image_url,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            item.save()
            items.append(item)
        logger.info("order.items_persisted", order_id=order.id, item_count=len(items))
        return items

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: int) -> Optional[Order]:
        """Order with user and items eager-loaded, or ``None``."""
        try:
            return (
                Order.objects.select_related("user")
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, TypeError, ValidationError):
            return None

    def get_for_update(self, id: int) -> Optional[Order]:
        """Lock the order row (``SELECT ... FOR UPDATE``).

        Items are loaded by the caller after the lock is held.
        """
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return (
            Order.objects.select_related("user")
            .prefetch_related("items")
            .filter(idempotency_key=key)
            .first()
        )

    def list_for_principal(
        self,
        principal: Principal,
        page: int,
        limit: int,
        filters: Optional[Dict[str, Any]] = None,
    ) -> OrderPage:
        """Newest first, scoped to the principal's own orders.

        Privileged principals see only their own orders here too; admin
        reporting is a separate concern.
        """
        if principal.is_anonymous:
            base = Order.objects.none()
        else:
            base = Order.objects.filter(**principal.owner_filter())
        queryset = (
            base.annotate(
                item_count=Count("items"),
                total_quantity=Coalesce(Sum("items__quantity"), Value(0)),
            )
            .order_by("-created_at", "-id")
        )
        filterset = OrderFilter(data=filters or {}, queryset=queryset)
        queryset = filterset.qs
        applied = {
            key: value
            for key, value in filterset.form.cleaned_data.items()
            if value not in (None, "")
        }

        paginator = Paginator(queryset, limit)
        total = paginator.count
        total_pages = paginator.num_pages if total else 0
        try:
            orders = list(paginator.page(page).object_list) if total else []
        except EmptyPage:
            orders = []

        pagination = PaginationDTO(
            current_page=page,
            per_page=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
        return OrderPage(orders=orders, pagination=pagination, filters=applied)

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        entity.save(update_fields=update_fields)
        logger.info("order.saved", order_id=entity.id, fields=update_fields)
        return entity

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: int,
        new_status: str,
        previous_status: Optional[str] = None,
        comment: str = "",
        changed_by: Optional[Principal] = None,
    ) -> OrderStatusHistory:
        """Append one history row.

        Staff actors are recorded as ``changed_by_admin``, other users as
        ``changed_by_user``; guests and the system leave both empty.
        """
        user_id = changed_by.user_id if changed_by else None
        is_admin = bool(changed_by and changed_by.is_privileged)
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            previous_status=previous_status,
            new_status=new_status,
            comment=comment or "",
            changed_by_user_id=None if is_admin else user_id,
            changed_by_admin_id=user_id if is_admin else None,
        )
        logger.info(
            "order.history_added",
            order_id=order_id,
            previous_status=previous_status,
            new_status=new_status,
            changed_by=history.changed_by,
        )
        return history

    def history(self, order_id: int) -> List[OrderStatusHistory]:
        return list(
            OrderStatusHistory.objects.select_related(
                "changed_by_user", "changed_by_admin"
            )
            .filter(order_id=order_id)
            .order_by("created_at", "id")
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def add_notification(self, order_id: int, **fields: Any) -> OrderNotification:
        return OrderNotification.objects.create(order_id=order_id, **fields)
