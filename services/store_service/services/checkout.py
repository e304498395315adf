"""Checkout: turn a cart payload into a PENDING order in one transaction."""

import uuid
from typing import Any, Optional

from libs.common.currency import ZERO, to_money
from libs.common.datetime_utils import utc_now
from libs.common.errors import NotFoundError, StoreError, ValidationError
from libs.common.logging import get_logger
from services.store_service.models import (
    Address,
    AddressType,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Product,
    ShippingMethod,
    User,
)
from services.store_service.services import coupon_ops, order_ops, pricing
from services.store_service.services._helpers import parse_uuid
from services.store_service.services.settings_store import get_store_settings
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "address1",
    "address2",
    "city",
    "state",
    "postal_code",
    "country",
)


def _build_address(data: dict[str, Any], address_type: AddressType) -> Address:
    """Order-owned address copy, kept out of every user's address book."""
    return Address(
        user_id=None,
        type=address_type,
        is_default=False,
        **{field: data.get(field) for field in ADDRESS_FIELDS},
    )


async def _load_products(
    db: AsyncSession, items: list[dict[str, Any]]
) -> dict[uuid.UUID, Product]:
    ids = {parse_uuid(item["product_id"], "Product") for item in items}
    result = await db.execute(
        select(Product).where(Product.id.in_(ids), Product.is_active.is_(True))
    )
    products = {product.id: product for product in result.scalars().all()}
    for product_id in ids:
        if product_id not in products:
            raise NotFoundError("Product", product_id)
    return products


async def _reserve_stock(db: AsyncSession, product: Product, quantity: int) -> None:
    stmt = (
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise ValidationError(
            f"Insufficient stock for {product.name}",
            {"field": "items", "product_id": str(product.id)},
        )


async def create_order(
    db: AsyncSession,
    *,
    items: list[dict[str, Any]],
    email: str,
    shipping_address: dict[str, Any],
    billing_address: Optional[dict[str, Any]] = None,
    shipping_method: str = ShippingMethod.STANDARD.value,
    coupon_code: Optional[str] = None,
    phone: Optional[str] = None,
    notes: Optional[str] = None,
    payment_method: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Order:
    """Create an order from ``items``.

    Prices are snapshotted from the products. Stock decrement and coupon
    redemption happen in the same transaction as the order insert, so a
    failure anywhere leaves nothing behind.
    """
    if not items:
        raise ValidationError("Order must contain at least one item", {"field": "items"})
    for item in items:
        if int(item.get("quantity") or 0) < 1:
            raise ValidationError("Quantity must be at least 1", {"field": "items"})

    store = await get_store_settings(db)

    owner: Optional[User] = None
    if user_id is not None:
        owner = await db.get(User, parse_uuid(user_id, "User"))
        if owner is None:
            raise NotFoundError("User", user_id)
    elif not store["allow_guest_checkout"]:
        raise ValidationError("Guest checkout is disabled")

    products = await _load_products(db, items)
    lines: list[tuple[Product, int]] = []
    for item in items:
        product = products[parse_uuid(item["product_id"], "Product")]
        quantity = int(item["quantity"])
        if product.stock < quantity:
            raise ValidationError(
                f"Only {product.stock} available for {product.name}",
                {"field": "items", "product_id": str(product.id)},
            )
        lines.append((product, quantity))

    line_items = [
        pricing.LineItem(price=p.price, quantity=q, weight=p.weight or ZERO)
        for p, q in lines
    ]
    subtotal = pricing.compute_subtotal(line_items)

    coupon = None
    evaluation = None
    if coupon_code:
        coupon, evaluation = await coupon_ops.validate_coupon(
            db, coupon_code, subtotal, currency=store["currency"]
        )

    totals = pricing.compute_order_totals(
        line_items,
        tax_rate=store["tax_rate"],
        shipping_method=shipping_method,
        discount=evaluation.discount_amount if evaluation else ZERO,
        free_shipping=bool(evaluation and evaluation.free_shipping),
        free_shipping_threshold=store["free_shipping_threshold"],
    )

    owner_id = owner.id if owner else None
    ship_to = _build_address(
        shipping_address,
        AddressType.BOTH if billing_address is None else AddressType.SHIPPING,
    )
    db.add(ship_to)
    bill_to = ship_to
    if billing_address is not None:
        bill_to = _build_address(billing_address, AddressType.BILLING)
        db.add(bill_to)

    order = Order(
        order_number=Order.generate_order_number(),
        user_id=owner_id,
        email=email,
        phone=phone,
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping_cost,
        tax_amount=totals.tax_amount,
        discount_amount=totals.discount_amount,
        total=totals.total,
        currency=store["currency"],
        coupon_id=coupon.id if coupon else None,
        coupon_code=coupon.code if coupon else None,
        shipping_method=shipping_method,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        payment_method=payment_method,
        notes=notes,
        created_at=utc_now(),
    )
    order.shipping_address = ship_to
    order.billing_address = bill_to
    db.add(order)

    try:
        await db.flush()
        for product, quantity in lines:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    sku=product.sku,
                    quantity=quantity,
                    price=product.price,
                    total=to_money(product.price * quantity),
                )
            )
            await _reserve_stock(db, product, quantity)
        await order_ops.record_initial_history(db, order)
        if coupon is not None:
            await coupon_ops.increment_usage(db, coupon.id)
        await db.commit()
    except StoreError:
        await db.rollback()
        raise

    logger.info(
        "Created order %s for %s: total=%s items=%d coupon=%s",
        order.order_number,
        email,
        order.total,
        len(lines),
        order.coupon_code,
    )
    return await order_ops.load_order(db, order.id)

