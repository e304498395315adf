"""Order lifecycle: status state machine and payment status updates.

Every status change writes the new status and one OrderHistory row in the
same transaction.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    InvalidPaymentStatus,
    InvalidTransition,
    NotFoundError,
    PersistenceError,
    StoreError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.store_service.models import (
    Order,
    OrderHistory,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)
from services.store_service.services._helpers import parse_uuid
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

# Linear fulfilment path used by "advance to next step" actions
NEXT_STATUS: dict[OrderStatus, Optional[OrderStatus]] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PROCESSING,
    OrderStatus.PROCESSING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
    OrderStatus.DELIVERED: None,
    OrderStatus.CANCELLED: None,
    OrderStatus.REFUNDED: None,
}


@dataclass
class BulkTransitionResult:
    order_id: str
    success: bool
    status: Optional[OrderStatus] = None
    error: Optional[str] = None
    code: Optional[str] = None


def parse_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError("Invalid order status", {"field": "status", "value": str(value)})


def parse_payment_status(value: Any) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise InvalidPaymentStatus(value)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    return NEXT_STATUS[current]


async def load_order(
    db: AsyncSession, order_id: Any, *, for_update: bool = False
) -> Order:
    """Fetch an order with items and history, fresh from the database."""
    order_uuid = parse_uuid(order_id, "Order")
    query = (
        select(Order)
        .where(Order.id == order_uuid)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.history),
            selectinload(Order.shipping_address),
            selectinload(Order.billing_address),
        )
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update(of=Order)
    order = (await db.execute(query)).scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


def _stamp_status_time(order: Order, target: OrderStatus) -> None:
    now = utc_now()
    if target == OrderStatus.SHIPPED:
        order.shipped_at = now
    elif target == OrderStatus.DELIVERED:
        order.delivered_at = now
    elif target == OrderStatus.CANCELLED:
        order.cancelled_at = now


async def transition(
    db: AsyncSession,
    order_id: Any,
    to_status: Any,
    notes: Optional[str] = None,
    *,
    performed_by: Optional[str] = None,
    enforce: Optional[bool] = None,
) -> Order:
    """Move an order to ``to_status`` and append a history entry.

    Moves outside ALLOWED_TRANSITIONS raise ``InvalidTransition`` unless
    enforcement is switched off, in which case they are logged as anomalies.
    Re-applying the current status is always rejected.
    """
    if enforce is None:
        enforce = get_settings().ENFORCE_STATUS_TRANSITIONS

    target = parse_status(to_status)
    order = await load_order(db, order_id, for_update=True)
    current = order.status

    if target == current:
        raise InvalidTransition(current.value, target.value)
    if not can_transition(current, target):
        if enforce:
            raise InvalidTransition(current.value, target.value)
        logger.warning(
            "Out-of-sequence status change on order %s: %s -> %s",
            order.order_number,
            current.value,
            target.value,
        )

    order.status = target
    _stamp_status_time(order, target)
    db.add(
        OrderHistory(
            order_id=order.id, status=target, notes=notes, created_by=performed_by
        )
    )

    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to persist status change for order %s", order.id)
        raise PersistenceError()

    logger.info(
        "Order %s status %s -> %s by %s",
        order.order_number,
        current.value,
        target.value,
        performed_by or "system",
    )
    return await load_order(db, order.id)


async def bulk_transition(
    db: AsyncSession,
    order_ids: Sequence[Any],
    to_status: Any,
    notes: Optional[str] = None,
    *,
    performed_by: Optional[str] = None,
) -> list[BulkTransitionResult]:
    """Apply ``transition`` to each id independently.

    One failing id never aborts the batch; each result says whether that id
    succeeded and, if not, why.
    """
    if not order_ids:
        raise ValidationError("Order IDs are required", {"field": "order_ids"})
    target = parse_status(to_status)

    results: list[BulkTransitionResult] = []
    for order_id in order_ids:
        try:
            order = await transition(
                db, order_id, target, notes, performed_by=performed_by
            )
        except StoreError as exc:
            await db.rollback()
            results.append(
                BulkTransitionResult(
                    order_id=str(order_id),
                    success=False,
                    error=exc.message,
                    code=exc.code,
                )
            )
            continue
        results.append(
            BulkTransitionResult(
                order_id=str(order_id), success=True, status=order.status
            )
        )

    succeeded = sum(1 for r in results if r.success)
    logger.info(
        "Bulk status update to %s: %d succeeded, %d failed",
        target.value,
        succeeded,
        len(results) - succeeded,
    )
    return results


async def update_payment_status(
    db: AsyncSession,
    order_id: Any,
    payment_status: Any,
    *,
    performed_by: Optional[str] = None,
) -> Order:
    """Set the payment status. Any known value is accepted from any state."""
    target = parse_payment_status(payment_status)
    order = await load_order(db, order_id, for_update=True)
    previous = order.payment_status
    order.payment_status = target
    await db.commit()

    logger.info(
        "Order %s payment status %s -> %s by %s",
        order.order_number,
        previous.value,
        target.value,
        performed_by or "system",
    )
    return await load_order(db, order.id)


async def record_initial_history(
    db: AsyncSession, order: Order, notes: str = "Order created"
) -> None:
    """Add the creation history row for a freshly inserted order. Does not commit."""
    db.add(OrderHistory(order_id=order.id, status=order.status, notes=notes))
