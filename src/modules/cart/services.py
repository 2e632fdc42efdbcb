"""Cart use cases: list lines and add a product.

Returns ``Result`` values like ``OrderService`` so the API layer renders
failures the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import structlog
from django.db import DatabaseError, IntegrityError, transaction

from modules.cart.dtos import AddCartItemDTO, CartLine
from modules.cart.exceptions import CartOwnerRequired, ExceedsStock, InvalidQuantity
from modules.core.exceptions import DomainError, PersistenceError
from modules.inventory.exceptions import InsufficientStock
from modules.products.exceptions import ProductNotFound, ProductUnavailable
from shared.domain.result import Failure, Result, Success

if TYPE_CHECKING:
    from modules.cart.models import CartItem
    from modules.cart.repositories.django_repository import CartDjangoSource
    from modules.core.principal import Principal
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 100


class CartService:
    def __init__(
        self,
        cart_source: CartDjangoSource,
        product_repository: IProductRepository,
    ) -> None:
        self._cart = cart_source
        self._product_repo = product_repository

    def list_items(self, principal: Principal) -> Result[List[CartLine], DomainError]:
        if principal.is_anonymous:
            return Failure(CartOwnerRequired())
        return Success(self._cart.get_items(principal))

    def add_item(
        self, principal: Principal, dto: AddCartItemDTO
    ) -> Result[CartItem, DomainError]:
        try:
            return Success(self._add_item(principal, dto))
        except DomainError as exc:
            logger.info("cart.add_rejected", code=exc.code, product_id=dto.product_id)
            return Failure(exc)
        except DatabaseError as exc:
            logger.exception("cart.database_error", product_id=dto.product_id)
            return Failure(
                PersistenceError(
                    cause=exc,
                    operation="cart.add_item",
                    params={"product_id": dto.product_id, "quantity": dto.quantity},
                )
            )

    @transaction.atomic
    def _add_item(self, principal: Principal, dto: AddCartItemDTO) -> CartItem:
        """Add ``dto.quantity`` units, merging with an existing row.

        Raises:
            CartOwnerRequired, InvalidQuantity, ProductNotFound,
            ProductUnavailable, InsufficientStock, ExceedsStock.
        """
        if not principal.has_single_owner:
            raise CartOwnerRequired()
        if not MIN_QUANTITY <= dto.quantity <= MAX_QUANTITY:
            raise InvalidQuantity(
                f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}.",
                details={"min": MIN_QUANTITY, "max": MAX_QUANTITY},
            )

        product = self._product_repo.get_by_id(dto.product_id)
        if product is None:
            raise ProductNotFound(f"Product {dto.product_id} not found.")
        if not product.is_active:
            raise ProductUnavailable(f"Product {product.sku} is not available.")
        if product.stock_quantity < dto.quantity:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}.",
                details={
                    "product_id": product.id,
                    "requested_quantity": dto.quantity,
                    "available_quantity": product.stock_quantity,
                },
            )

        existing = self._cart.get_row_for_update(principal, product.id)
        if existing is None:
            try:
                with transaction.atomic():
                    item = self._cart.add_row(principal, product.id, dto.quantity)
            except IntegrityError:
                # A concurrent first add won the insert; merge into its row
                existing = self._cart.get_row_for_update(principal, product.id)
                if existing is None:
                    raise
                logger.info("cart.insert_raced", product_id=product.id)
            else:
                logger.info(
                    "cart.item_added", product_id=product.id, quantity=dto.quantity
                )
                return item

        merged = existing.quantity + dto.quantity
        if merged > product.stock_quantity:
            raise ExceedsStock(
                f"Total quantity for {product.name} exceeds available stock.",
                details={
                    "product_id": product.id,
                    "current_quantity": existing.quantity,
                    "requested_quantity": dto.quantity,
                    "available_quantity": product.stock_quantity,
                },
            )
        existing.quantity = merged
        existing.save(update_fields=["quantity"])
        logger.info("cart.item_merged", product_id=product.id, quantity=merged)
        return existing
