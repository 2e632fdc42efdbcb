"""Product model with SKU uniqueness and stock control.

Business rules implemented:
- SKU must be unique in the system (normalised to uppercase).
- Inactive products cannot be added to a cart or ordered.
- Price must be greater than zero.
- Stock quantity can never be negative: ``PositiveIntegerField`` adds a
  database CHECK, and the inventory ledger only decrements through a
  conditional UPDATE.

``stock_quantity`` must only be changed through
``modules.inventory.ledger.InventoryLedger`` so every change leaves an
``InventoryMovement`` row behind.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Product(BaseModel):
    """Catalog product as seen by the order core."""

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    image_url = models.URLField(max_length=500, blank=True, default="")
    stock_quantity = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product.created",
                product_id=self.pk,
                sku=self.sku,
                stock_quantity=self.stock_quantity,
            )

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
