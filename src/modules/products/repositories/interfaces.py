"""Product repository interface.

The order core only needs read access to the catalog; stock is changed
exclusively through the inventory ledger.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(ABC):
    """Read-only repository contract for catalog products."""

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[Product]:
        """Retrieve a product by primary key, ``None`` if missing."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU."""

    @abstractmethod
    def get_stock(self, id: int) -> Optional[int]:
        """Return the live stock quantity, ``None`` if the product is missing."""
