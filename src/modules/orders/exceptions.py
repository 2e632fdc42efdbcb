"""Order domain exceptions.

Raised inside the unit of work when a business rule is violated, so the
transaction rolls back.  ``OrderService`` turns them into ``Failure``
results and the API layer renders them through the shared exception
handler.
"""

from __future__ import annotations

from modules.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


# ----------------------------------------------------------------------
# Validation (400)
# ----------------------------------------------------------------------


class InvalidShippingMethod(ValidationError):
    default_code = "INVALID_SHIPPING_METHOD"
    default_message = "Invalid shipping method."


class PrincipalRequired(ValidationError):
    """Neither a user id nor a guest session id was supplied (or both were)."""

    default_code = "USER_OR_SESSION_REQUIRED"
    default_message = "User ID or guest session ID required."


class InvalidOrderId(ValidationError):
    default_code = "INVALID_ORDER_ID"
    default_message = "Invalid order ID."


class InvalidStatus(ValidationError):
    default_code = "INVALID_STATUS"
    default_message = "Invalid order status."


# ----------------------------------------------------------------------
# Conflicts (400)
# ----------------------------------------------------------------------


class EmptyCart(ConflictError):
    default_code = "EMPTY_CART"
    default_message = "Cart is empty."


class StatusUnchanged(ConflictError):
    default_code = "STATUS_UNCHANGED"
    default_message = "Order already has this status."


class CannotCancel(ConflictError):
    """Cancellation attempted on a delivered, cancelled or refunded order."""

    default_code = "CANNOT_CANCEL"
    default_message = "Order cannot be cancelled in its current status."


class InvalidStatusTransition(ConflictError):
    default_code = "INVALID_STATUS_TRANSITION"
    default_message = "Order status cannot be changed from its current status."


class IdempotencyKeyReused(ConflictError):
    default_code = "IDEMPOTENCY_KEY_REUSED"
    default_message = "Idempotency key was already used for another order."


# ----------------------------------------------------------------------
# Lookup / access
# ----------------------------------------------------------------------


class OrderNotFound(NotFoundError):
    default_code = "ORDER_NOT_FOUND"
    default_message = "Order not found."


class OrderAccessDenied(AuthorizationError):
    default_code = "ACCESS_DENIED"
    default_message = "Access denied."
