"""Inventory movement ledger.

Every change to ``Product.stock_quantity`` appends exactly one
``InventoryMovement``.  Replaying the movements of a product from its
catalog creation reproduces its live stock, so the table doubles as an
audit trail and a reconstruction log.

Rows are immutable once written (``AppendOnlyModel``).
"""

from __future__ import annotations

from django.db import models

from modules.core.models import AppendOnlyModel


class MovementType(models.TextChoices):
    IN = "in", "Stock in"
    OUT = "out", "Stock out"
    ADJUSTMENT = "adjustment", "Adjustment"


class ReferenceType(models.TextChoices):
    ORDER = "order", "Order"
    PURCHASE = "purchase", "Purchase"
    ADJUSTMENT = "adjustment", "Adjustment"
    RETURN = "return", "Return"


class InventoryMovement(AppendOnlyModel):
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="inventory_movements",
    )
    type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity = models.PositiveIntegerField()
    previous_stock = models.PositiveIntegerField()
    new_stock = models.PositiveIntegerField()
    reason = models.CharField(max_length=255)
    reference_type = models.CharField(max_length=20, choices=ReferenceType.choices)
    reference_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "inventory_movements"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["product"], name="inv_mov_product_idx"),
            models.Index(fields=["type"], name="inv_mov_type_idx"),
            models.Index(
                fields=["reference_type", "reference_id"],
                name="inv_mov_reference_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="inv_mov_quantity_positive",
            ),
        ]

    @property
    def signed_quantity(self) -> int:
        """Net effect of this movement on stock."""
        return self.new_stock - self.previous_stock

    def __str__(self) -> str:
        return (
            f"{self.type} {self.quantity} of product {self.product_id} "
            f"({self.previous_stock} -> {self.new_stock})"
        )
