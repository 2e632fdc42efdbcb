"""Order domain constants.

Status choices, the transition table used by the status state machine,
and the static shipping, coupon and notification tables.
"""

from decimal import Decimal
from typing import NamedTuple

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)

# Any non-terminal state may move to any other state, backwards included.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    status: (
        frozenset()
        if status in TERMINAL_STATES
        else frozenset(s for s in OrderStatus.values if s != status)
    )
    for status in OrderStatus.values
}


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class ShippingMethod(models.TextChoices):
    STANDARD = "standard", "Standard"
    EXPRESS = "express", "Express"
    OVERNIGHT = "overnight", "Overnight"


class ShippingRate(NamedTuple):
    cost: Decimal
    delivery_days: int


SHIPPING_RATES: dict[str, ShippingRate] = {
    ShippingMethod.STANDARD: ShippingRate(Decimal("800"), 7),
    ShippingMethod.EXPRESS: ShippingRate(Decimal("1500"), 3),
    ShippingMethod.OVERNIGHT: ShippingRate(Decimal("2500"), 1),
}


class CouponKind(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed amount"


class Coupon(NamedTuple):
    kind: str
    value: Decimal


COUPONS: dict[str, Coupon] = {
    "WELCOME10": Coupon(CouponKind.PERCENTAGE, Decimal("10")),
    "SAVE500": Coupon(CouponKind.FIXED, Decimal("500")),
    "FREESHIP": Coupon(CouponKind.FIXED, Decimal("0")),
}

TAX_RATE = Decimal("0.10")

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_MAX_RETRIES = 5

DEFAULT_CANCEL_REASON = "User requested cancellation"
ORDER_CREATED_COMMENT = "Order created"


class NotificationType(models.TextChoices):
    CONFIRMATION = "confirmation", "Confirmation"
    STATUS_UPDATE = "status_update", "Status update"
    SHIPPING = "shipping", "Shipping"
    DELIVERY = "delivery", "Delivery"


class NotificationMethod(models.TextChoices):
    EMAIL = "email", "Email"
    SMS = "sms", "SMS"
    PUSH = "push", "Push"


class NotificationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


NOTIFICATION_SUBJECTS: dict[str, str] = {
    NotificationType.CONFIRMATION: "Thank you for your order - Order {order_number}",
    NotificationType.STATUS_UPDATE: "Order status updated - Order {order_number}",
    NotificationType.SHIPPING: "Your order has shipped - Order {order_number}",
    NotificationType.DELIVERY: "Your order was delivered - Order {order_number}",
}

NOTIFICATION_BODIES: dict[str, str] = {
    NotificationType.CONFIRMATION: (
        "Dear {customer_name},\n\n"
        "Thank you for your order.\nOrder number: {order_number}\n\n"
        "We are confirming your order and processing the payment.\n"
        "We will contact you again once it is ready to ship."
    ),
    NotificationType.STATUS_UPDATE: (
        "Dear {customer_name},\n\n"
        "The status of order {order_number} is now: {status}.\n\n"
        "See your account page for details."
    ),
    NotificationType.SHIPPING: (
        "Dear {customer_name},\n\n"
        "Order {order_number} has been shipped.\n\n"
        "It will arrive shortly."
    ),
    NotificationType.DELIVERY: (
        "Dear {customer_name},\n\n"
        "Order {order_number} has been delivered.\n\n"
        "Thank you for shopping with us."
    ),
}

DEFAULT_NOTIFICATION_SUBJECT = "About your order - Order {order_number}"
DEFAULT_NOTIFICATION_BODY = "There is news about your order {order_number}."
DEFAULT_CUSTOMER_NAME = "Customer"
