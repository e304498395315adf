"""Read side for orders: filtered listing, detail lookups and aggregate stats."""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.common.currency import ZERO, to_money
from libs.common.errors import NotFoundError
from services.store_service.models import Order, OrderStatus, PaymentStatus, User
from services.store_service.services._helpers import parse_uuid
from services.store_service.services.order_ops import load_order
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class OrderFilters:
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    search: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    user_id: Optional[Any] = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE


@dataclass
class OrderPage:
    orders: list[Order]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _apply_filters(query, filters: OrderFilters):
    if filters.status is not None:
        query = query.where(Order.status == filters.status)
    if filters.payment_status is not None:
        query = query.where(Order.payment_status == filters.payment_status)
    if filters.search:
        term = f"%{filters.search.strip()}%"
        query = query.outerjoin(User, Order.user_id == User.id).where(
            or_(
                Order.order_number.ilike(term),
                Order.email.ilike(term),
                User.name.ilike(term),
            )
        )
    if filters.date_from is not None:
        query = query.where(Order.created_at >= filters.date_from)
    if filters.date_to is not None:
        query = query.where(Order.created_at <= filters.date_to)
    if filters.user_id is not None:
        query = query.where(Order.user_id == parse_uuid(filters.user_id, "User"))
    return query


async def list_orders(db: AsyncSession, filters: Optional[OrderFilters] = None) -> OrderPage:
    """Newest-first page of orders matching every given filter."""
    filters = filters or OrderFilters()
    page = max(filters.page, 1)
    limit = min(max(filters.limit, 1), MAX_PAGE_SIZE)

    count_query = _apply_filters(select(func.count()).select_from(Order), filters)
    total = (await db.execute(count_query)).scalar_one()

    query = (
        _apply_filters(select(Order), filters)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.order_number.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    return OrderPage(
        orders=list(result.scalars().all()), total=total, page=page, limit=limit
    )


async def get_order(db: AsyncSession, order_id: Any) -> Order:
    return await load_order(db, order_id)


async def get_user_order_by_number(
    db: AsyncSession, user_id: Any, order_number: str
) -> Order:
    """An order by number, visible only to the user who placed it."""
    query = select(Order.id).where(
        Order.order_number == order_number,
        Order.user_id == parse_uuid(user_id, "User"),
    )
    order_id = (await db.execute(query)).scalar_one_or_none()
    if order_id is None:
        raise NotFoundError("Order", order_number)
    return await load_order(db, order_id)


async def get_stats(db: AsyncSession) -> dict[str, Any]:
    """Counts per status and payment status and revenue from paid orders.

    Every status key is present even when its count is zero.
    """
    by_status = {status: 0 for status in OrderStatus}
    result = await db.execute(
        select(Order.status, func.count()).group_by(Order.status)
    )
    for status, count in result.all():
        by_status[status] = count

    by_payment = {status: 0 for status in PaymentStatus}
    result = await db.execute(
        select(Order.payment_status, func.count()).group_by(Order.payment_status)
    )
    for payment_status, count in result.all():
        by_payment[payment_status] = count

    revenue = (
        await db.execute(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                Order.payment_status == PaymentStatus.PAID
            )
        )
    ).scalar_one()

    return {
        "total": sum(by_status.values()),
        "pending": by_status[OrderStatus.PENDING],
        "confirmed": by_status[OrderStatus.CONFIRMED],
        "processing": by_status[OrderStatus.PROCESSING],
        "shipped": by_status[OrderStatus.SHIPPED],
        "delivered": by_status[OrderStatus.DELIVERED],
        "cancelled": by_status[OrderStatus.CANCELLED],
        "refunded": by_status[OrderStatus.REFUNDED],
        "pending_payments": by_payment[PaymentStatus.PENDING],
        "by_payment_status": {status.value: count for status, count in by_payment.items()},
        "total_revenue": to_money(Decimal(str(revenue or ZERO))),
    }
