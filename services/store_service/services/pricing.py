"""Order money calculations.

Pure functions over ``Decimal`` amounts; callers validate line items
(quantity >= 1, price >= 0) before reaching this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Union

from libs.common.currency import ZERO, to_money
from services.store_service.models.enums import ShippingMethod

SHIPPING_RATES: dict[str, Decimal] = {
    ShippingMethod.STANDARD.value: Decimal("5.99"),
    ShippingMethod.EXPRESS.value: Decimal("12.99"),
    ShippingMethod.OVERNIGHT.value: Decimal("24.99"),
    ShippingMethod.FREE.value: Decimal("0.00"),
}

# Weight above which each extra unit costs WEIGHT_SURCHARGE_PER_UNIT
WEIGHT_ALLOWANCE = Decimal("5")
WEIGHT_SURCHARGE_PER_UNIT = Decimal("2")

DELIVERY_DAYS: dict[str, int] = {
    ShippingMethod.STANDARD.value: 5,
    ShippingMethod.EXPRESS.value: 2,
    ShippingMethod.OVERNIGHT.value: 1,
    ShippingMethod.FREE.value: 7,
}


@dataclass(frozen=True)
class LineItem:
    price: Decimal
    quantity: int
    weight: Decimal = ZERO  # per unit


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal


def _method_key(method: Union[ShippingMethod, str, None]) -> str:
    if isinstance(method, ShippingMethod):
        return method.value
    return (method or "").lower()


def compute_subtotal(items: Iterable[LineItem]) -> Decimal:
    return to_money(sum((item.price * item.quantity for item in items), ZERO))


def compute_tax(subtotal: Decimal, tax_rate: Decimal) -> Decimal:
    return to_money(subtotal * tax_rate)


def compute_shipping(
    items: Iterable[LineItem], method: Union[ShippingMethod, str, None] = None
) -> Decimal:
    """Base rate for ``method`` plus a surcharge for weight above the allowance.

    Unknown methods are charged the standard rate.
    """
    base = SHIPPING_RATES.get(_method_key(method), SHIPPING_RATES["standard"])
    total_weight = sum((item.weight * item.quantity for item in items), ZERO)
    if total_weight > WEIGHT_ALLOWANCE:
        base += (total_weight - WEIGHT_ALLOWANCE) * WEIGHT_SURCHARGE_PER_UNIT
    return to_money(base)


def compute_total(
    subtotal: Decimal, shipping: Decimal, tax: Decimal, discount: Decimal
) -> Decimal:
    """subtotal + shipping + tax - discount, never below zero.

    The discount is capped at the gross amount before subtracting.
    """
    gross = subtotal + shipping + tax
    applied = min(discount, gross)
    return to_money(gross - applied)


def compute_order_totals(
    items: list[LineItem],
    *,
    tax_rate: Decimal,
    shipping_method: Union[ShippingMethod, str, None] = None,
    discount: Decimal = ZERO,
    free_shipping: bool = False,
    free_shipping_threshold: Optional[Decimal] = None,
) -> OrderTotals:
    """Roll every money field of an order up in one pass."""
    subtotal = compute_subtotal(items)
    qualifies_for_free = (
        free_shipping_threshold is not None
        and free_shipping_threshold > 0
        and subtotal >= free_shipping_threshold
    )
    if free_shipping or qualifies_for_free:
        shipping = ZERO
    else:
        shipping = compute_shipping(items, shipping_method)
    tax = compute_tax(subtotal, tax_rate)
    discount = to_money(discount)
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax_amount=tax,
        discount_amount=min(discount, subtotal + shipping + tax),
        total=compute_total(subtotal, shipping, tax, discount),
    )


def estimate_delivery_date(
    shipped_at: datetime, method: Union[ShippingMethod, str, None] = None
) -> datetime:
    days = DELIVERY_DAYS.get(_method_key(method), DELIVERY_DAYS["standard"])
    return shipped_at + timedelta(days=days)
