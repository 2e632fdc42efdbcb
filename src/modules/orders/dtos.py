"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are the
contracts between the API layer (DRF serializers) and the services.  DTOs
are immutable (``frozen=True``).

- ``CreateOrderDTO``: checkout input (the cart supplies the items).
- ``OrderItemOutputDTO`` / ``StatusHistoryDTO`` / ``OrderOutputDTO``: full
  order representation.
- ``OrderSummaryDTO`` / ``PaginationDTO`` / ``OrderListDTO``: list view.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem, OrderStatusHistory


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    ``shipping_method`` is validated against the rate table by the
    pipeline, which reports ``INVALID_SHIPPING_METHOD``.
    ``billing_address`` defaults to the shipping address.
    """

    model_config = ConfigDict(frozen=True)

    shipping_method: str
    shipping_address: Dict[str, Any]
    billing_address: Optional[Dict[str, Any]] = None
    payment_method: str = ""
    coupon_code: Optional[str] = None
    notes: str = ""
    idempotency_key: Optional[str] = None

    @field_validator("shipping_address")
    @classmethod
    def shipping_address_required(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("Shipping address is required.")
        return v

    @field_validator("idempotency_key")
    @classmethod
    def blank_key_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def effective_billing_address(self) -> Dict[str, Any]:
        return self.billing_address or self.shipping_address


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderItemOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    product_id: int
    product_name: str
    product_sku: str
    product_image_url: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    discount_amount: Decimal
    final_price: Decimal

    @classmethod
    def from_entity(cls, item: OrderItem) -> OrderItemOutputDTO:
        return cls(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            product_sku=item.product_sku,
            product_image_url=item.product_image_url,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
            discount_amount=item.discount_amount,
            final_price=item.final_price,
        )


class StatusHistoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    previous_status: Optional[str]
    new_status: str
    comment: str
    changed_by: str
    changed_by_user_id: Optional[int]
    changed_by_admin_id: Optional[int]
    changed_by_name: str
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            previous_status=history.previous_status,
            new_status=history.new_status,
            comment=history.comment,
            changed_by=history.changed_by,
            changed_by_user_id=history.changed_by_user_id,
            changed_by_admin_id=history.changed_by_admin_id,
            changed_by_name=history.changed_by_name,
            created_at=history.created_at,
        )


class OrderOutputDTO(BaseModel):
    """Full order with items, as returned by show/create/update."""

    model_config = ConfigDict(frozen=True)

    id: int
    order_number: str
    user_id: Optional[int]
    guest_session_id: Optional[str]
    status: str
    subtotal: Decimal
    total_amount: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    coupon_code: str
    coupon_discount: Decimal
    currency: str
    payment_status: str
    payment_method: str
    shipping_method: str
    shipping_address: Dict[str, Any]
    billing_address: Dict[str, Any]
    estimated_delivery: Optional[date]
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    notes: str
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOutputDTO]

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Build from an Order; ``items`` should be prefetched."""
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            guest_session_id=order.guest_session_id,
            status=order.status,
            subtotal=order.subtotal,
            total_amount=order.total_amount,
            tax_amount=order.tax_amount,
            shipping_cost=order.shipping_cost,
            discount_amount=order.discount_amount,
            coupon_code=order.coupon_code,
            coupon_discount=order.coupon_discount,
            currency=order.currency,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            shipping_method=order.shipping_method,
            shipping_address=order.shipping_address or {},
            billing_address=order.billing_address or {},
            estimated_delivery=order.estimated_delivery,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[OrderItemOutputDTO.from_entity(i) for i in order.items.all()],
        )


class OrderSummaryDTO(BaseModel):
    """List row: no addresses, no item detail."""

    model_config = ConfigDict(frozen=True)

    id: int
    order_number: str
    status: str
    total_amount: Decimal
    currency: str
    payment_status: str
    shipping_method: str
    item_count: int
    total_quantity: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, order: Order) -> OrderSummaryDTO:
        """Expects ``item_count`` / ``total_quantity`` annotations."""
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            total_amount=order.total_amount,
            currency=order.currency,
            payment_status=order.payment_status,
            shipping_method=order.shipping_method,
            item_count=getattr(order, "item_count", 0) or 0,
            total_quantity=getattr(order, "total_quantity", 0) or 0,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class PaginationDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_page: int
    per_page: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class OrderListDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    orders: List[OrderSummaryDTO]
    pagination: PaginationDTO
