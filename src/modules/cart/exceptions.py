"""Cart domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, ValidationError


class InvalidQuantity(ValidationError):
    default_code = "INVALID_QUANTITY"
    default_message = "Invalid quantity."


class ExceedsStock(ConflictError):
    """The cart quantity after merging would exceed available stock."""

    default_code = "EXCEEDS_STOCK"
    default_message = "Total quantity exceeds available stock."


class CartOwnerRequired(ValidationError):
    default_code = "USER_OR_SESSION_REQUIRED"
    default_message = "User ID or guest session ID required."
