"""Inventory domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError


class InsufficientStock(ConflictError):
    """Not enough stock for the requested quantity.

    Raised both by the up-front availability check and by the ledger's
    conditional decrement when stock changed concurrently.
    """

    default_code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock."


class TransactionRequired(RuntimeError):
    """A ledger mutation was attempted outside a database transaction.

    This is a programming error, not a business failure, so it does not
    belong to the ``DomainError`` taxonomy.
    """
