"""Coupon endpoints: public validation and admin management."""

import uuid

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import admin_limit, api_limit
from libs.db.session import get_async_db
from services.store_service.schemas import (
    AppliedCoupon,
    CouponCreate,
    CouponRedeemRequest,
    CouponResponse,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidateResponse,
)
from services.store_service.services import coupon_ops
from services.store_service.services.settings_store import get_store_settings
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])
admin_router = APIRouter(tags=["admin-store"])


@router.post("/coupons/validate", response_model=CouponValidateResponse)
@api_limit
async def validate_coupon(
    request: Request,
    data: CouponValidateRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Check a code against a cart total without consuming it."""
    store = await get_store_settings(db)
    coupon, evaluation = await coupon_ops.validate_coupon(
        db, data.code, data.cart_total, currency=store["currency"]
    )
    return CouponValidateResponse(
        valid=evaluation.valid,
        coupon=AppliedCoupon(
            id=coupon.id,
            code=coupon.code,
            type=coupon.type,
            description=coupon.description,
            discount_amount=evaluation.discount_amount,
            free_shipping=evaluation.free_shipping,
        ),
    )


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("/coupons", response_model=list[CouponResponse])
async def list_coupons(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.list_coupons(db)


@admin_router.post(
    "/coupons", response_model=CouponResponse, status_code=status.HTTP_201_CREATED
)
@admin_limit
async def create_coupon(
    request: Request,
    data: CouponCreate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.create_coupon(db, data.model_dump())


@admin_router.get("/coupons/{coupon_id}", response_model=CouponResponse)
async def get_coupon(
    coupon_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.get_coupon(db, coupon_id)


@admin_router.patch("/coupons/{coupon_id}", response_model=CouponResponse)
@admin_limit
async def update_coupon(
    request: Request,
    coupon_id: uuid.UUID,
    data: CouponUpdate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.update_coupon(
        db, coupon_id, data.model_dump(exclude_unset=True)
    )


@admin_router.delete("/coupons/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
@admin_limit
async def delete_coupon(
    request: Request,
    coupon_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await coupon_ops.delete_coupon(db, coupon_id)


@admin_router.post("/coupons/redeem", response_model=CouponResponse)
@admin_limit
async def redeem_coupon(
    request: Request,
    data: CouponRedeemRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Record one use of a code for an order finalized outside checkout."""
    return await coupon_ops.redeem_coupon(db, data.code)
