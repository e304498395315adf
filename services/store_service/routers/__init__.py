"""Store service routers package."""

from services.store_service.routers.addresses import router as addresses_router
from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.admin_settings import logs_router
from services.store_service.routers.admin_settings import (
    router as admin_settings_router,
)
from services.store_service.routers.coupons import admin_router as admin_coupons_router
from services.store_service.routers.coupons import router as coupons_router
from services.store_service.routers.orders import router as orders_router

__all__ = [
    "addresses_router",
    "admin_coupons_router",
    "admin_orders_router",
    "admin_settings_router",
    "coupons_router",
    "logs_router",
    "orders_router",
]
