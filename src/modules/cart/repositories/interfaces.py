"""Cart source contract consumed by the order creation pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from modules.cart.dtos import CartLine
    from modules.core.principal import Principal


class ICartSource(ABC):
    """Read/clear access to the cart scoped to a principal."""

    @abstractmethod
    def get_items(self, principal: Principal) -> List[CartLine]:
        """Return the principal's cart lines for currently active products."""

    @abstractmethod
    def clear(self, principal: Principal) -> int:
        """Delete every cart row of the principal; return the number removed."""
