"""Inventory ledger: guarded stock mutations with an append-only audit log.

Concurrency control is the conditional UPDATE in ``decrement``::

    UPDATE products SET stock_quantity = stock_quantity - %s
     WHERE id = %s AND stock_quantity >= %s

Two checkouts racing for the last unit both issue this statement; the
database serialises them on the row lock and exactly one sees an affected
row count of one.  No read-then-write, no ``SELECT FOR UPDATE``.

The ledger never opens or commits a transaction.  It must run inside the
caller's unit of work so that a failed order also discards the movements
written before the failure.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import structlog
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from modules.inventory.exceptions import InsufficientStock, TransactionRequired
from modules.inventory.models import InventoryMovement, MovementType, ReferenceType
from modules.products.exceptions import ProductNotFound
from modules.products.models import Product

logger = structlog.get_logger(__name__)


class InventoryLedger:
    """Stock decrement/restore primitives, each recorded as a movement."""

    def __init__(self, using: Optional[str] = None) -> None:
        self._using = using

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def decrement(
        self,
        product_id: int,
        quantity: int,
        reason: str,
        reference_id: Optional[int],
        reference_type: str = ReferenceType.ORDER,
    ) -> InventoryMovement:
        """Remove ``quantity`` units, failing atomically if stock is short.

        Raises:
            InsufficientStock: stock is lower than ``quantity`` (possibly
                because a concurrent order consumed it).
            ProductNotFound: the product does not exist.
        """
        self._require_transaction()
        _validate_quantity(quantity)
        log = logger.bind(product_id=product_id, quantity=quantity)

        updated = (
            self._products()
            .filter(id=product_id, stock_quantity__gte=quantity)
            .update(
                stock_quantity=F("stock_quantity") - quantity,
                updated_at=timezone.now(),
            )
        )
        if updated == 0:
            available = self._current_stock(product_id)
            if available is None:
                raise ProductNotFound(f"Product {product_id} not found.")
            log.warning("inventory.decrement_rejected", available=available)
            raise InsufficientStock(
                f"Insufficient stock for product {product_id}: "
                f"requested {quantity}, available {available}.",
                details={
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "available_quantity": available,
                },
            )

        new_stock = self._current_stock(product_id)
        movement = self._record(
            product_id=product_id,
            movement_type=MovementType.OUT,
            quantity=quantity,
            previous_stock=new_stock + quantity,
            new_stock=new_stock,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        log.info("inventory.decremented", remaining=new_stock)
        return movement

    def restore(
        self,
        product_id: int,
        quantity: int,
        reason: str,
        reference_id: Optional[int],
        reference_type: str = ReferenceType.RETURN,
    ) -> InventoryMovement:
        """Add ``quantity`` units back.  Unconditional: it cannot go negative.

        Raises:
            ProductNotFound: the product does not exist.
        """
        self._require_transaction()
        _validate_quantity(quantity)

        updated = (
            self._products()
            .filter(id=product_id)
            .update(
                stock_quantity=F("stock_quantity") + quantity,
                updated_at=timezone.now(),
            )
        )
        if updated == 0:
            raise ProductNotFound(f"Product {product_id} not found.")

        new_stock = self._current_stock(product_id)
        movement = self._record(
            product_id=product_id,
            movement_type=MovementType.IN,
            quantity=quantity,
            previous_stock=new_stock - quantity,
            new_stock=new_stock,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        logger.info(
            "inventory.restored",
            product_id=product_id,
            quantity=quantity,
            restored_stock=new_stock,
        )
        return movement

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def movements_for(
        self,
        reference_id: int,
        reference_types: Iterable[str] = (ReferenceType.ORDER, ReferenceType.RETURN),
    ) -> List[InventoryMovement]:
        """Movements attributed to one business document, oldest first."""
        return list(
            InventoryMovement.objects.using(self._db_alias())
            .filter(
                reference_id=reference_id,
                reference_type__in=list(reference_types),
            )
            .order_by("created_at", "id")
        )

    def net_movement(self, product_id: int) -> int:
        """Sum of signed movements recorded for ``product_id``."""
        rows = (
            InventoryMovement.objects.using(self._db_alias())
            .filter(product_id=product_id)
            .values_list("previous_stock", "new_stock")
        )
        return sum(new - previous for previous, new in rows)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _db_alias(self) -> str:
        return self._using or "default"

    def _products(self):
        return Product.objects.using(self._db_alias())

    def _current_stock(self, product_id: int) -> Optional[int]:
        return (
            self._products()
            .filter(id=product_id)
            .values_list("stock_quantity", flat=True)
            .first()
        )

    def _require_transaction(self) -> None:
        if not transaction.get_connection(self._db_alias()).in_atomic_block:
            raise TransactionRequired(
                "Inventory changes must run inside the caller's transaction."
            )

    def _record(
        self,
        *,
        product_id: int,
        movement_type: str,
        quantity: int,
        previous_stock: int,
        new_stock: int,
        reason: str,
        reference_type: str,
        reference_id: Optional[int],
    ) -> InventoryMovement:
        movement = InventoryMovement(
            product_id=product_id,
            type=movement_type,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=reason[:255],
            reference_type=reference_type,
            reference_id=reference_id,
        )
        movement.save(using=self._db_alias())
        return movement


def _validate_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValueError(f"Quantity must be a positive integer, got {quantity!r}.")
