"""Unit tests for coupon evaluation, redemption and administration.

Evaluation tests build Coupon instances in memory; redemption and admin
tests run against the db_session fixture.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    ConflictError,
    CouponError,
    CouponErrorKind,
    NotFoundError,
    ValidationError,
)
from services.store_service.models import CouponType
from services.store_service.services.coupon_ops import (
    create_coupon,
    delete_coupon,
    evaluate,
    get_coupon,
    list_coupons,
    redeem_coupon,
    update_coupon,
    validate_coupon,
)
from tests.factories import CouponFactory

D = Decimal


# ---------------------------------------------------------------------------
# evaluate
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_percentage_discount_capped_by_maximum():
    coupon = CouponFactory.create(
        type=CouponType.PERCENTAGE, value=D("20"), maximum_discount=D("10")
    )
    result = evaluate(coupon, D("100"))
    assert result.valid is True
    assert result.discount_amount == D("10.00")
    assert result.free_shipping is False


@pytest.mark.unit
def test_percentage_discount_without_cap():
    coupon = CouponFactory.create(type=CouponType.PERCENTAGE, value=D("15"))
    assert evaluate(coupon, D("80")).discount_amount == D("12.00")


@pytest.mark.unit
def test_fixed_amount_never_exceeds_cart_total():
    coupon = CouponFactory.create(type=CouponType.FIXED_AMOUNT, value=D("50"))
    assert evaluate(coupon, D("30")).discount_amount == D("30.00")


@pytest.mark.unit
def test_free_shipping_has_zero_discount_and_flag():
    coupon = CouponFactory.create(type=CouponType.FREE_SHIPPING, value=D("0"))
    result = evaluate(coupon, D("42"))
    assert result.discount_amount == D("0.00")
    assert result.free_shipping is True


@pytest.mark.unit
def test_missing_coupon_is_not_found():
    with pytest.raises(CouponError) as exc_info:
        evaluate(None, D("10"))
    assert exc_info.value.kind == CouponErrorKind.NOT_FOUND
    assert exc_info.value.status_code == 404


@pytest.mark.unit
def test_inactive_coupon_rejected():
    coupon = CouponFactory.create(is_active=False)
    with pytest.raises(CouponError) as exc_info:
        evaluate(coupon, D("10"))
    assert exc_info.value.kind == CouponErrorKind.INACTIVE


@pytest.mark.unit
def test_expired_coupon_rejected():
    coupon = CouponFactory.create(valid_until=utc_now() - timedelta(minutes=1))
    with pytest.raises(CouponError) as exc_info:
        evaluate(coupon, D("10"))
    assert exc_info.value.kind == CouponErrorKind.EXPIRED
    assert exc_info.value.message == "Coupon has expired"


@pytest.mark.unit
def test_not_yet_valid_coupon_rejected():
    coupon = CouponFactory.create(valid_from=utc_now() + timedelta(days=2))
    with pytest.raises(CouponError) as exc_info:
        evaluate(coupon, D("10"))
    assert exc_info.value.kind == CouponErrorKind.NOT_YET_VALID


@pytest.mark.unit
def test_usage_limit_reached_rejected():
    coupon = CouponFactory.create(usage_limit=1, used_count=1)
    with pytest.raises(CouponError) as exc_info:
        evaluate(coupon, D("10"))
    assert exc_info.value.kind == CouponErrorKind.USAGE_LIMIT_EXCEEDED


@pytest.mark.unit
def test_below_minimum_message_includes_formatted_amount():
    coupon = CouponFactory.create(minimum_amount=D("50"))
    with pytest.raises(CouponError) as exc_info:
        evaluate(coupon, D("49.99"))
    assert exc_info.value.kind == CouponErrorKind.BELOW_MINIMUM
    assert exc_info.value.message == "Minimum order amount of $50.00 required"


@pytest.mark.unit
def test_checks_run_in_order_inactive_before_expired():
    coupon = CouponFactory.create(
        is_active=False, valid_until=utc_now() - timedelta(days=1)
    )
    with pytest.raises(CouponError) as exc_info:
        evaluate(coupon, D("10"))
    assert exc_info.value.kind == CouponErrorKind.INACTIVE


@pytest.mark.unit
def test_evaluate_does_not_consume_usage():
    coupon = CouponFactory.create(usage_limit=5, used_count=2)
    evaluate(coupon, D("10"))
    assert coupon.used_count == 2


# ---------------------------------------------------------------------------
# validate_coupon / redeem_coupon
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_coupon_normalizes_code(db_session):
    db_session.add(CouponFactory.create(code="SPRING20", value=D("20")))
    await db_session.commit()

    coupon, result = await validate_coupon(db_session, "  spring20 ", D("50"))

    assert coupon.code == "SPRING20"
    assert result.discount_amount == D("10.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_coupon_unknown_code(db_session):
    with pytest.raises(CouponError) as exc_info:
        await validate_coupon(db_session, "NOPE", D("50"))
    assert exc_info.value.kind == CouponErrorKind.NOT_FOUND


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_coupon_blank_code(db_session):
    with pytest.raises(ValidationError):
        await validate_coupon(db_session, "   ", D("50"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_redeem_increments_used_count(db_session):
    db_session.add(CouponFactory.create(code="ONCE", usage_limit=3, used_count=0))
    await db_session.commit()

    coupon = await redeem_coupon(db_session, "ONCE")

    assert coupon.used_count == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_one_redemption_wins_when_limit_is_one(db_session):
    """Two redemptions against usage_limit=1: exactly one succeeds."""
    db_session.add(CouponFactory.create(code="LASTONE", usage_limit=1, used_count=0))
    await db_session.commit()

    outcomes = []
    for _ in range(2):
        try:
            await redeem_coupon(db_session, "LASTONE")
            outcomes.append("ok")
        except ConflictError:
            outcomes.append("conflict")

    assert outcomes == ["ok", "conflict"]
    coupon = (await list_coupons(db_session))[0]
    await db_session.refresh(coupon)
    assert coupon.used_count == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unlimited_coupon_redeems_repeatedly(db_session):
    db_session.add(CouponFactory.create(code="FOREVER", usage_limit=None))
    await db_session.commit()

    for _ in range(3):
        coupon = await redeem_coupon(db_session, "FOREVER")

    assert coupon.used_count == 3


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


def _coupon_data(**overrides):
    data = {
        "code": " welcome10 ",
        "type": CouponType.PERCENTAGE,
        "value": D("10"),
        "maximum_discount": D("25"),
        "valid_from": utc_now(),
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_coupon_normalizes_code_and_starts_unused(db_session):
    coupon = await create_coupon(db_session, _coupon_data())

    assert coupon.code == "WELCOME10"
    assert coupon.used_count == 0
    assert coupon.is_active is True
    assert coupon.maximum_discount == D("25")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_free_shipping_forces_zero_value(db_session):
    coupon = await create_coupon(
        db_session,
        _coupon_data(code="SHIPFREE", type=CouponType.FREE_SHIPPING, value=D("15")),
    )
    assert coupon.value == D("0")
    assert coupon.maximum_discount is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_fixed_amount_drops_maximum_discount(db_session):
    coupon = await create_coupon(
        db_session, _coupon_data(code="TENOFF", type=CouponType.FIXED_AMOUNT)
    )
    assert coupon.maximum_discount is None


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("value", [D("0"), D("100.01")])
async def test_create_percentage_value_bounds(db_session, value):
    with pytest.raises(ValidationError):
        await create_coupon(db_session, _coupon_data(value=value))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_duplicate_code_conflicts(db_session):
    await create_coupon(db_session, _coupon_data())
    with pytest.raises(ConflictError):
        await create_coupon(db_session, _coupon_data(code="WELCOME10"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_rejects_window_ending_before_start(db_session):
    now = utc_now()
    with pytest.raises(ValidationError):
        await create_coupon(
            db_session, _coupon_data(valid_from=now, valid_until=now - timedelta(days=1))
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_rejects_window_ending_before_start(db_session):
    now = utc_now()
    coupon = await create_coupon(db_session, _coupon_data(code="WINDOW", valid_from=now))

    with pytest.raises(ValidationError):
        await update_coupon(
            db_session, coupon.id, {"valid_until": now - timedelta(days=365)}
        )
    with pytest.raises(ValidationError):
        await update_coupon(
            db_session,
            coupon.id,
            {"valid_from": now + timedelta(days=2), "valid_until": now + timedelta(days=1)},
        )

    await db_session.refresh(coupon)
    assert coupon.valid_until is None


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("field", ["code", "type", "value", "is_active", "valid_from"])
async def test_update_rejects_null_for_required_fields(db_session, field):
    coupon = await create_coupon(db_session, _coupon_data(code="KEEP"))

    with pytest.raises(ValidationError) as exc:
        await update_coupon(db_session, coupon.id, {field: None})

    assert exc.value.details == {"field": field}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_may_clear_optional_fields(db_session):
    coupon = await create_coupon(
        db_session,
        _coupon_data(code="CLEAR", usage_limit=5, valid_until=utc_now() + timedelta(days=3)),
    )

    updated = await update_coupon(
        db_session, coupon.id, {"usage_limit": None, "valid_until": None}
    )

    assert updated.usage_limit is None
    assert updated.valid_until is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_coupon_rechecks_duplicates_excluding_self(db_session):
    first = await create_coupon(db_session, _coupon_data(code="FIRST"))
    await create_coupon(db_session, _coupon_data(code="SECOND"))

    same = await update_coupon(db_session, first.id, {"code": "first", "value": D("12")})
    assert same.code == "FIRST"
    assert same.value == D("12")

    with pytest.raises(ConflictError):
        await update_coupon(db_session, first.id, {"code": "second"})


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_to_free_shipping_zeroes_value(db_session):
    coupon = await create_coupon(db_session, _coupon_data(code="SWITCH"))
    updated = await update_coupon(
        db_session, coupon.id, {"type": CouponType.FREE_SHIPPING}
    )
    assert updated.value == D("0")
    assert updated.maximum_discount is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_coupon(db_session):
    coupon = await create_coupon(db_session, _coupon_data(code="GONE"))
    await delete_coupon(db_session, coupon.id)

    with pytest.raises(NotFoundError):
        await get_coupon(db_session, coupon.id)
    assert await list_coupons(db_session) == []

