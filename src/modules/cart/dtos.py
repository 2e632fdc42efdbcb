"""Cart DTOs exchanged with the order pipeline.

``CartLine`` is the read model the pipeline consumes: the cart quantity
joined with the live product snapshot (price, stock, status) at read time.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.cart.models import CartItem


class CartLine(BaseModel):
    """Immutable view of one cart row plus its product."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    name: str
    sku: str
    image_url: str = ""
    unit_price: Decimal
    quantity: int
    live_stock: int
    is_active: bool = True

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @property
    def has_enough_stock(self) -> bool:
        return self.live_stock >= self.quantity

    @classmethod
    def from_entity(cls, item: CartItem) -> CartLine:
        product = item.product
        return cls(
            product_id=product.id,
            name=product.name,
            sku=product.sku,
            image_url=product.image_url or "",
            unit_price=product.price,
            quantity=item.quantity,
            live_stock=product.stock_quantity,
            is_active=product.is_active,
        )


class AddCartItemDTO(BaseModel):
    """Input for adding a product to a cart."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    quantity: int
