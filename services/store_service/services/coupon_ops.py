"""Coupon evaluation, redemption and administration."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.common.currency import ZERO, format_currency, to_money
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.errors import (
    ConflictError,
    CouponError,
    CouponErrorKind,
    NotFoundError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.store_service.models import Coupon, CouponType
from sqlalchemy import desc, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

MAX_PERCENTAGE = Decimal("100")
# Columns a partial update may not clear
REQUIRED_FIELDS = frozenset({"code", "type", "value", "is_active", "valid_from"})


@dataclass(frozen=True)
class CouponEvaluation:
    valid: bool
    discount_amount: Decimal
    free_shipping: bool


def normalize_code(code: str) -> str:
    return code.strip().upper()


# ---------------------------------------------------------------------------
# Evaluation (pure)
# ---------------------------------------------------------------------------


def evaluate(
    coupon: Optional[Coupon],
    cart_total: Decimal,
    now: Optional[datetime] = None,
    currency: str = "USD",
) -> CouponEvaluation:
    """Check ``coupon`` against the cart and compute its discount.

    Checks run in a fixed order and the first failure raises ``CouponError``.
    Evaluation never touches ``used_count``.
    """
    now = ensure_utc(now or utc_now())
    cart_total = to_money(cart_total)

    if coupon is None:
        raise CouponError(CouponErrorKind.NOT_FOUND)
    if not coupon.is_active:
        raise CouponError(CouponErrorKind.INACTIVE)

    valid_until = ensure_utc(coupon.valid_until)
    if valid_until is not None and valid_until < now:
        raise CouponError(CouponErrorKind.EXPIRED)

    valid_from = ensure_utc(coupon.valid_from)
    if valid_from is not None and valid_from > now:
        raise CouponError(CouponErrorKind.NOT_YET_VALID)

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponError(CouponErrorKind.USAGE_LIMIT_EXCEEDED)

    if coupon.minimum_amount is not None and cart_total < coupon.minimum_amount:
        raise CouponError(
            CouponErrorKind.BELOW_MINIMUM,
            f"Minimum order amount of {format_currency(coupon.minimum_amount, currency)} required",
        )

    discount = ZERO
    free_shipping = False
    if coupon.type == CouponType.PERCENTAGE:
        discount = to_money(cart_total * coupon.value / 100)
        if coupon.maximum_discount is not None:
            discount = min(discount, to_money(coupon.maximum_discount))
    elif coupon.type == CouponType.FIXED_AMOUNT:
        discount = min(to_money(coupon.value), cart_total)
    elif coupon.type == CouponType.FREE_SHIPPING:
        free_shipping = True

    return CouponEvaluation(
        valid=True, discount_amount=discount, free_shipping=free_shipping
    )


async def get_coupon_by_code(db: AsyncSession, code: str) -> Optional[Coupon]:
    result = await db.execute(select(Coupon).where(Coupon.code == normalize_code(code)))
    return result.scalar_one_or_none()


async def validate_coupon(
    db: AsyncSession, code: str, cart_total: Decimal, currency: str = "USD"
) -> tuple[Coupon, CouponEvaluation]:
    """Look up ``code`` and evaluate it. Raises ``CouponError`` on any failure."""
    if not code or not code.strip():
        raise ValidationError("Coupon code is required")
    coupon = await get_coupon_by_code(db, code)
    evaluation = evaluate(coupon, cart_total, currency=currency)
    return coupon, evaluation


# ---------------------------------------------------------------------------
# Redemption (atomic)
# ---------------------------------------------------------------------------


async def increment_usage(db: AsyncSession, coupon_id: uuid.UUID) -> None:
    """Conditionally bump ``used_count`` inside the caller's transaction.

    The limit check happens in the UPDATE itself so concurrent redemptions
    cannot push ``used_count`` past ``usage_limit``. Does not commit.
    """
    stmt = (
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            or_(
                Coupon.usage_limit.is_(None),
                Coupon.used_count < Coupon.usage_limit,
            ),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        logger.warning("Coupon %s redemption lost: usage limit reached", coupon_id)
        raise ConflictError(
            "Coupon usage limit was reached by another order",
            {"reason": CouponErrorKind.USAGE_LIMIT_EXCEEDED.value},
        )


async def redeem_coupon(db: AsyncSession, code: str) -> Coupon:
    """Record one use of ``code`` for a finalized order."""
    coupon = await get_coupon_by_code(db, code)
    if coupon is None:
        raise CouponError(CouponErrorKind.NOT_FOUND)

    try:
        await increment_usage(db, coupon.id)
    except ConflictError:
        await db.rollback()
        raise
    await db.commit()
    await db.refresh(coupon)

    logger.info("Redeemed coupon %s (used %d)", coupon.code, coupon.used_count)
    return coupon


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


def _normalize_value_fields(
    coupon_type: CouponType,
    value: Optional[Decimal],
    maximum_discount: Optional[Decimal],
) -> tuple[Decimal, Optional[Decimal]]:
    """Apply per-type rules to value and maximum discount."""
    if coupon_type == CouponType.FREE_SHIPPING:
        return ZERO, None

    if value is None or value <= 0:
        raise ValidationError(
            f"Value must be greater than 0 for {coupon_type.value.lower()} coupons",
            {"field": "value"},
        )
    if coupon_type == CouponType.PERCENTAGE and value > MAX_PERCENTAGE:
        raise ValidationError("Percentage cannot exceed 100", {"field": "value"})

    if coupon_type != CouponType.PERCENTAGE:
        maximum_discount = None
    return value, maximum_discount


async def _ensure_code_available(
    db: AsyncSession, code: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    query = select(Coupon.id).where(Coupon.code == code)
    if exclude_id is not None:
        query = query.where(Coupon.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError(f"Coupon code '{code}' already exists", {"field": "code"})


async def create_coupon(db: AsyncSession, data: dict[str, Any]) -> Coupon:
    code = normalize_code(data.get("code") or "")
    if not code:
        raise ValidationError("Code is required", {"field": "code"})

    coupon_type = CouponType(data["type"])
    value, maximum_discount = _normalize_value_fields(
        coupon_type, data.get("value"), data.get("maximum_discount")
    )

    valid_from = data.get("valid_from")
    if valid_from is None:
        raise ValidationError("Valid from date is required", {"field": "valid_from"})
    valid_until = data.get("valid_until")
    if valid_until is not None and ensure_utc(valid_until) <= ensure_utc(valid_from):
        raise ValidationError(
            "Valid until must be after valid from", {"field": "valid_until"}
        )

    await _ensure_code_available(db, code)

    coupon = Coupon(
        code=code,
        description=data.get("description"),
        type=coupon_type,
        value=value,
        minimum_amount=data.get("minimum_amount"),
        maximum_discount=maximum_discount,
        usage_limit=data.get("usage_limit"),
        used_count=0,
        is_active=data.get("is_active", True),
        valid_from=valid_from,
        valid_until=valid_until,
    )
    db.add(coupon)
    await db.commit()
    await db.refresh(coupon)

    logger.info("Created coupon %s (%s)", coupon.code, coupon.type.value)
    return coupon


async def get_coupon(db: AsyncSession, coupon_id: uuid.UUID) -> Coupon:
    coupon = await db.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFoundError("Coupon", coupon_id)
    return coupon


async def list_coupons(db: AsyncSession) -> list[Coupon]:
    result = await db.execute(select(Coupon).order_by(desc(Coupon.created_at)))
    return list(result.scalars().all())


async def update_coupon(
    db: AsyncSession, coupon_id: uuid.UUID, changes: dict[str, Any]
) -> Coupon:
    coupon = await get_coupon(db, coupon_id)

    for field in REQUIRED_FIELDS & changes.keys():
        if changes[field] is None:
            raise ValidationError(f"'{field}' cannot be null", {"field": field})

    if "code" in changes:
        changes["code"] = normalize_code(changes["code"])
        await _ensure_code_available(db, changes["code"], exclude_id=coupon.id)

    coupon_type = CouponType(changes.get("type") or coupon.type)
    if {"type", "value", "maximum_discount"} & changes.keys():
        value, maximum_discount = _normalize_value_fields(
            coupon_type,
            changes.get("value", coupon.value),
            changes.get("maximum_discount", coupon.maximum_discount),
        )
        changes["value"] = value
        changes["maximum_discount"] = maximum_discount

    if {"valid_from", "valid_until"} & changes.keys():
        valid_from = changes.get("valid_from", coupon.valid_from)
        valid_until = changes.get("valid_until", coupon.valid_until)
        if valid_until is not None and ensure_utc(valid_until) <= ensure_utc(
            valid_from
        ):
            raise ValidationError(
                "Valid until must be after valid from", {"field": "valid_until"}
            )

    for field, value in changes.items():
        setattr(coupon, field, value)

    await db.commit()
    await db.refresh(coupon)

    logger.info("Updated coupon %s fields=%s", coupon.code, sorted(changes))
    return coupon


async def delete_coupon(db: AsyncSession, coupon_id: uuid.UUID) -> None:
    coupon = await get_coupon(db, coupon_id)
    await db.delete(coupon)
    await db.commit()
    logger.info("Deleted coupon %s", coupon.code)
