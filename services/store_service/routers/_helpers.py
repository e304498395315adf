"""Shared helpers for store routers."""

from typing import Any, Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_utc
from services.store_service.models import Order
from services.store_service.schemas import OrderResponse
from services.store_service.services.order_ops import next_status
from services.store_service.services.pricing import estimate_delivery_date


def actor(user: Optional[AuthUser]) -> Optional[str]:
    """Identifier recorded as ``created_by``/``updated_by`` for audit trails."""
    if user is None:
        return None
    return user.email or user.user_id


def order_response(order: Order) -> OrderResponse:
    """Serialize an order with its derived fulfilment fields."""
    extra: dict[str, Any] = {"next_status": next_status(order.status)}
    if order.shipped_at is not None:
        extra["estimated_delivery"] = estimate_delivery_date(
            ensure_utc(order.shipped_at), order.shipping_method
        )
    return OrderResponse.model_validate(order).model_copy(update=extra)
