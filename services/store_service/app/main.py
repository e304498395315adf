"""FastAPI application for the Store Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.store_service.routers import (
    addresses_router,
    admin_coupons_router,
    admin_orders_router,
    admin_settings_router,
    coupons_router,
    logs_router,
    orders_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Store Service",
        version="0.1.0",
        description="Order lifecycle and pricing: checkout, coupons, order management.",
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    # Public store routes (checkout, orders, coupons, addresses)
    app.include_router(orders_router, prefix="/store")
    app.include_router(coupons_router, prefix="/store")
    app.include_router(addresses_router, prefix="/store")
    app.include_router(logs_router)

    # Admin routes (order management, coupons, settings)
    app.include_router(admin_orders_router, prefix="/admin/store")
    app.include_router(admin_coupons_router, prefix="/admin/store")
    app.include_router(admin_settings_router, prefix="/admin/store")

    return app


app = create_app()
