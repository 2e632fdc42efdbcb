"""Order pricing: subtotal, coupon discount, tax, shipping and total.

Pure functions over ``Decimal``; no database access.  Rounding is
``ROUND_HALF_UP`` to two places and happens only where noted, so::

    total == (subtotal - coupon_discount) + tax_amount + shipping_cost
    tax_amount == round((subtotal - coupon_discount) * TAX_RATE, 2)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from modules.orders.constants import (
    COUPONS,
    SHIPPING_RATES,
    TAX_RATE,
    CouponKind,
    ShippingRate,
)
from modules.orders.exceptions import InvalidShippingMethod

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    coupon_discount: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total: Decimal
    coupon_code: str = ""
    delivery_days: int = 0


def shipping_rate(shipping_method: str) -> ShippingRate:
    """Look up the static rate for ``shipping_method``.

    Raises:
        InvalidShippingMethod: the key is not in the rate table.
    """
    try:
        return SHIPPING_RATES[shipping_method]
    except (KeyError, TypeError):
        raise InvalidShippingMethod(
            f"Invalid shipping method: {shipping_method!r}.",
            details={"allowed": sorted(SHIPPING_RATES)},
        ) from None


def normalize_coupon(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def coupon_discount(subtotal: Decimal, coupon_code: Optional[str]) -> Decimal:
    """Discount for ``coupon_code``; unknown or blank codes give zero.

    Percentage coupons are rounded to cents.  Fixed coupons never exceed
    the subtotal.
    """
    coupon = COUPONS.get(normalize_coupon(coupon_code))
    if coupon is None:
        return ZERO
    if coupon.kind == CouponKind.PERCENTAGE:
        return quantize(subtotal * coupon.value / Decimal("100"))
    return min(coupon.value, subtotal)


def compute_totals(
    items: Iterable[PricedLine],
    shipping_method: str,
    coupon_code: Optional[str] = None,
) -> Totals:
    rate = shipping_rate(shipping_method)
    subtotal = sum(
        (Decimal(line.unit_price) * line.quantity for line in items), ZERO
    )
    discount = coupon_discount(subtotal, coupon_code)
    taxable = subtotal - discount
    tax = quantize(taxable * TAX_RATE)
    total = taxable + tax + rate.cost
    code = normalize_coupon(coupon_code)
    return Totals(
        subtotal=subtotal,
        coupon_discount=discount,
        tax_amount=tax,
        shipping_cost=rate.cost,
        total=total,
        coupon_code=code if code in COUPONS else "",
        delivery_days=rate.delivery_days,
    )
