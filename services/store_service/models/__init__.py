"""Store Service models package."""

from services.store_service.models.catalog import Product
from services.store_service.models.commerce import (
    Coupon,
    Order,
    OrderHistory,
    OrderItem,
)
from services.store_service.models.customer import Address, User
from services.store_service.models.enums import (
    AddressType,
    CouponType,
    OrderStatus,
    PaymentStatus,
    ShippingMethod,
    UserRole,
)
from services.store_service.models.settings import ClientErrorLog, StoreSetting

__all__ = [
    "Address",
    "AddressType",
    "ClientErrorLog",
    "Coupon",
    "CouponType",
    "Order",
    "OrderHistory",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "ShippingMethod",
    "StoreSetting",
    "User",
    "UserRole",
]
