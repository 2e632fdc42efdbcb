"""Order, OrderItem, OrderStatusHistory and OrderNotification models.

Rules carried by the schema:
- An order is owned by exactly one of ``user`` / ``guest_session_id``
  (check constraint ``orders_single_owner``).
- ``order_number`` is unique at the database level; the repository
  regenerates it when an insert collides.
- ``idempotency_key`` is nullable and unique, so only API orders that send
  a key are deduplicated.
- OrderItem snapshots name, sku, image and price at purchase time and is
  never updated afterwards.
- Status history rows are append-only and record who made the change:
  a user, an admin, or neither (system).
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any, Optional

import structlog
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import AppendOnlyModel, BaseModel
from modules.orders.constants import (
    ALLOWED_TRANSITIONS,
    DEFAULT_CUSTOMER_NAME,
    ORDER_NUMBER_PREFIX,
    TERMINAL_STATES,
    NotificationMethod,
    NotificationStatus,
    NotificationType,
    OrderStatus,
    PaymentStatus,
    ShippingMethod,
)

logger = structlog.get_logger(__name__)

_MONEY = {"max_digits": 12, "decimal_places": 2, "default": Decimal("0.00")}


def _default_currency() -> str:
    return getattr(settings, "ORDER_CURRENCY", "JPY")


class Order(BaseModel):
    """Order aggregate root.

    ``order_number`` (``ORD-YYYYMMDD-NNNN``) is the identifier shown to
    customers; the numeric ``id`` is used for every internal reference and
    API lookup.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    guest_session_id: models.CharField = models.CharField(  # noqa: DJ01
        max_length=255, null=True, blank=True
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )

    subtotal: models.DecimalField = models.DecimalField(**_MONEY)
    total_amount: models.DecimalField = models.DecimalField(**_MONEY)
    tax_amount: models.DecimalField = models.DecimalField(**_MONEY)
    shipping_cost: models.DecimalField = models.DecimalField(**_MONEY)
    discount_amount: models.DecimalField = models.DecimalField(**_MONEY)
    coupon_code: models.CharField = models.CharField(
        max_length=50, blank=True, default=""
    )
    coupon_discount: models.DecimalField = models.DecimalField(**_MONEY)
    currency: models.CharField = models.CharField(
        max_length=3, default=_default_currency
    )

    payment_status: models.CharField = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method: models.CharField = models.CharField(
        max_length=50, blank=True, default=""
    )

    shipping_method: models.CharField = models.CharField(
        max_length=20,
        choices=ShippingMethod.choices,
        default=ShippingMethod.STANDARD,
    )
    shipping_address: models.JSONField = models.JSONField(default=dict)
    billing_address: models.JSONField = models.JSONField(default=dict)
    estimated_delivery: models.DateField = models.DateField(null=True, blank=True)
    shipped_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    delivered_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    notes: models.TextField = models.TextField(blank=True, default="")
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["guest_session_id"], name="orders_guest_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(user__isnull=False, guest_session_id__isnull=True)
                    | models.Q(user__isnull=True, guest_session_id__isnull=False)
                ),
                name="orders_single_owner",
            ),
        ]

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    # ------------------------------------------------------------------
    # Customer contact
    # ------------------------------------------------------------------

    @property
    def customer_email(self) -> str:
        """Registered user's email, falling back to the shipping address."""
        if self.user_id is not None:
            email = getattr(self.user, "email", "") or ""
            if email:
                return email
        address = self.shipping_address or {}
        return str(address.get("email") or "")

    @property
    def customer_name(self) -> str:
        if self.user_id is not None:
            name = self.user.get_full_name() or self.user.get_username()
            if name:
                return name
        address = self.shipping_address or {}
        return str(address.get("name") or DEFAULT_CUSTOMER_NAME)

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Random candidate in the ``ORD-YYYYMMDD-NNNN`` format.

        Not guaranteed unique; the unique index decides.
        """
        today = timezone.localdate()
        suffix = secrets.randbelow(9999) + 1
        return f"{ORDER_NUMBER_PREFIX}-{today:%Y%m%d}-{suffix:04d}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            self.order_number = self.generate_order_number()
        if not self.billing_address:
            self.billing_address = self.shipping_address
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(AppendOnlyModel):
    """Line item with a snapshot of the product at purchase time.

    ``total_price = unit_price * quantity`` and
    ``final_price = total_price - discount_amount`` are computed on insert.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name: models.CharField = models.CharField(max_length=255)
    product_sku: models.CharField = models.CharField(max_length=50)
    product_image_url: models.CharField = models.CharField(
        max_length=500, blank=True, default=""
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2
    )
    total_price: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, editable=False
    )
    discount_amount: models.DecimalField = models.DecimalField(**_MONEY)
    final_price: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, editable=False
    )

    class Meta:
        db_table = "order_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.total_price = self.unit_price * self.quantity
        self.final_price = self.total_price - (self.discount_amount or Decimal("0"))
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_sku} x{self.quantity} ({self.final_price})"


class OrderStatusHistory(AppendOnlyModel):
    """Audit trail entry for one status transition.

    ``previous_status`` is ``NULL`` for the creation entry.  At most one of
    ``changed_by_user`` / ``changed_by_admin`` is set; neither means the
    change was made by the system.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    previous_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    comment: models.TextField = models.TextField(blank=True, default="")
    changed_by_user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    changed_by_admin: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="osh_order_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(changed_by_user__isnull=True)
                    | models.Q(changed_by_admin__isnull=True)
                ),
                name="osh_single_actor",
            ),
        ]

    @property
    def changed_by(self) -> str:
        if self.changed_by_admin_id is not None:
            return "admin"
        if self.changed_by_user_id is not None:
            return "user"
        return "system"

    @property
    def changed_by_name(self) -> str:
        """Display name of the acting account, empty for system changes."""
        actor = self.changed_by_admin or self.changed_by_user
        if actor is None:
            return ""
        return actor.get_full_name() or actor.get_username()

    def __str__(self) -> str:
        return f"{self.order_id}: {self.previous_status} -> {self.new_status}"


class OrderNotification(BaseModel):
    """Notification scheduled by the order core and delivered by a worker."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type: models.CharField = models.CharField(
        max_length=20, choices=NotificationType.choices
    )
    method: models.CharField = models.CharField(
        max_length=10,
        choices=NotificationMethod.choices,
        default=NotificationMethod.EMAIL,
    )
    recipient: models.CharField = models.CharField(max_length=255)
    subject: models.CharField = models.CharField(max_length=255)
    content: models.TextField = models.TextField()
    status: models.CharField = models.CharField(
        max_length=10,
        choices=NotificationStatus.choices,
        default=NotificationStatus.PENDING,
    )
    sent_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    error_message: models.TextField = models.TextField(blank=True, default="")
    attempts: models.PositiveIntegerField = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "order_notifications"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="notif_status_idx"),
        ]

    # ------------------------------------------------------------------
    # Delivery transitions
    # ------------------------------------------------------------------

    def mark_as_sent(self) -> None:
        self.status = NotificationStatus.SENT
        self.sent_at = timezone.now()
        self.error_message = ""
        self.attempts += 1
        self.save(update_fields=["status", "sent_at", "error_message", "attempts"])
        logger.info(
            "notification.sent", notification_id=self.pk, order_id=self.order_id
        )

    def mark_as_failed(self, error: Optional[str] = None) -> None:
        self.status = NotificationStatus.FAILED
        self.error_message = (error or "")[:1000]
        self.attempts += 1
        self.save(update_fields=["status", "error_message", "attempts"])
        logger.warning(
            "notification.failed",
            notification_id=self.pk,
            order_id=self.order_id,
            error=self.error_message,
        )

    def __str__(self) -> str:
        return f"{self.type} -> {self.recipient} ({self.status})"
