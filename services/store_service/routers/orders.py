"""Store orders router: checkout and the customer's own orders."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.routers._helpers import order_response
from services.store_service.schemas import (
    CheckoutRequest,
    OrderListResponse,
    OrderResponse,
    OrderSummary,
)
from services.store_service.services import checkout, order_queries
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post(
    "/checkout", response_model=OrderResponse, status_code=status.HTTP_201_CREATED
)
@api_limit
async def create_order(
    request: Request,
    data: CheckoutRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order. Works for signed-in customers and guests."""
    order = await checkout.create_order(
        db,
        items=[item.model_dump() for item in data.items],
        email=data.email,
        phone=data.phone,
        shipping_address=data.shipping_address.model_dump(),
        billing_address=(
            data.billing_address.model_dump() if data.billing_address else None
        ),
        shipping_method=data.shipping_method.value,
        coupon_code=data.coupon_code,
        payment_method=data.payment_method,
        notes=data.notes,
        user_id=current_user.user_id if current_user else None,
    )
    return order_response(order)


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(order_queries.DEFAULT_PAGE_SIZE, ge=1, le=order_queries.MAX_PAGE_SIZE),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's orders, newest first."""
    result = await order_queries.list_orders(
        db,
        order_queries.OrderFilters(user_id=current_user.user_id, page=page, limit=limit),
    )
    return OrderListResponse(
        orders=[OrderSummary.model_validate(o) for o in result.orders],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )


@router.get("/orders/{order_number}", response_model=OrderResponse)
async def get_my_order(
    order_number: str,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get order by order number."""
    order = await order_queries.get_user_order_by_number(
        db, current_user.user_id, order_number
    )
    return order_response(order)
