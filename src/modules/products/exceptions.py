"""Product domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, NotFoundError


class ProductNotFound(NotFoundError):
    """The requested product does not exist."""

    default_code = "PRODUCT_NOT_FOUND"
    default_message = "Product not found."


class ProductUnavailable(ConflictError):
    """The product exists but is inactive and cannot be sold."""

    default_code = "PRODUCT_UNAVAILABLE"
    default_message = "Product is not available."
