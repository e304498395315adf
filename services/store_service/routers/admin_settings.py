"""Store settings administration and client error reporting."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import get_optional_user, require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import admin_limit, api_limit, get_client_ip
from libs.db.session import get_async_db
from services.store_service.routers._helpers import actor
from services.store_service.schemas import (
    ClientErrorAck,
    ClientErrorReport,
    StoreSettingsResponse,
    StoreSettingsUpdate,
)
from services.store_service.services import settings_store
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logs_router = APIRouter(tags=["system"])


@router.get("/settings", response_model=StoreSettingsResponse)
async def get_settings(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await settings_store.get_store_settings(db)


@router.put("/settings", response_model=StoreSettingsResponse)
@admin_limit
async def update_settings(
    request: Request,
    data: StoreSettingsUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Persist only the keys that were sent."""
    return await settings_store.update_store_settings(
        db, data.model_dump(exclude_unset=True), updated_by=actor(admin)
    )


@logs_router.post(
    "/logs/error", response_model=ClientErrorAck, status_code=status.HTTP_201_CREATED
)
@api_limit
async def report_client_error(
    request: Request,
    data: ClientErrorReport,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Accept an error report from a browser client."""
    entry = await settings_store.record_client_error(
        db,
        message=data.message,
        stack=data.stack,
        component_stack=data.component_stack,
        url=data.url,
        user_id=current_user.user_id if current_user else data.user_id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return ClientErrorAck(id=entry.id)
