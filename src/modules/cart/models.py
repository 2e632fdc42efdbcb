"""Shopping cart rows (``cart_items`` table).

A cart row belongs to exactly one owner: a registered user or an anonymous
guest session.  The order pipeline reads and clears these rows through
``ICartSource``; it never touches the model directly.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class CartItem(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="cart_items",
    )
    session_id = models.CharField(max_length=255, null=True, blank=True)  # noqa: DJ01
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["session_id"], name="cart_items_session_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(user__isnull=False, session_id__isnull=True)
                    | models.Q(user__isnull=True, session_id__isnull=False)
                ),
                name="cart_items_single_owner",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="cart_items_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["user", "product"],
                name="cart_items_user_product_uniq",
            ),
            models.UniqueConstraint(
                fields=["session_id", "product"],
                name="cart_items_session_product_uniq",
            ),
        ]

    def __str__(self) -> str:
        owner = f"user {self.user_id}" if self.user_id else f"guest {self.session_id}"
        return f"{owner}: product {self.product_id} x{self.quantity}"
