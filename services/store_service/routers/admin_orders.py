"""Admin order management: listing, stats, status and payment updates."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.store_service.models import OrderStatus, PaymentStatus
from services.store_service.routers._helpers import actor, order_response
from services.store_service.schemas import (
    BulkResultItem,
    BulkStatusResponse,
    BulkStatusUpdate,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    OrderStatusUpdate,
    OrderSummary,
    PaymentStatusUpdate,
)
from services.store_service.services import order_ops, order_queries
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(order_queries.DEFAULT_PAGE_SIZE, ge=1, le=order_queries.MAX_PAGE_SIZE),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all orders with filters, newest first."""
    result = await order_queries.list_orders(
        db,
        order_queries.OrderFilters(
            status=status,
            payment_status=payment_status,
            search=search,
            date_from=date_from,
            date_to=date_to,
            page=page,
            limit=limit,
        ),
    )
    return OrderListResponse(
        orders=[OrderSummary.model_validate(o) for o in result.orders],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )


@router.get("/orders/stats", response_model=OrderStatsResponse)
async def get_order_stats(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_queries.get_stats(db)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Get order details with items and history."""
    return order_response(await order_queries.get_order(db, order_id))


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
@admin_limit
async def update_order_status(
    request: Request,
    order_id: str,
    data: OrderStatusUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Move an order through its lifecycle."""
    order = await order_ops.transition(
        db, order_id, data.status, data.notes, performed_by=actor(admin)
    )
    return order_response(order)


@router.put("/orders/{order_id}/payment-status", response_model=OrderResponse)
@admin_limit
async def update_payment_status(
    request: Request,
    order_id: str,
    data: PaymentStatusUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.update_payment_status(
        db, order_id, data.payment_status, performed_by=actor(admin)
    )
    return order_response(order)


@router.post("/orders/bulk-update", response_model=BulkStatusResponse)
@admin_limit
async def bulk_update_status(
    request: Request,
    data: BulkStatusUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Apply one status to many orders; each id reports its own outcome."""
    results = await order_ops.bulk_transition(
        db, data.order_ids, data.status, data.notes, performed_by=actor(admin)
    )
    succeeded = sum(1 for r in results if r.success)
    return BulkStatusResponse(
        results=[BulkResultItem.model_validate(r) for r in results],
        succeeded=succeeded,
        failed=len(results) - succeeded,
    )
