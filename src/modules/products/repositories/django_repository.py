"""Django ORM implementation of the Product repository.

Error handling follows the Null Object pattern: methods return ``None``
instead of raising, and the service layer decides how to translate a
missing product into a domain error.
"""

from __future__ import annotations

from typing import Optional

from django.core.exceptions import ValidationError

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: int) -> Optional[Product]:
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return Product.objects.filter(sku=sku.strip().upper()).first()

    def get_stock(self, id: int) -> Optional[int]:
        return (
            Product.objects.filter(id=id)
            .values_list("stock_quantity", flat=True)
            .first()
        )
