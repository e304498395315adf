"""Customer address book."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import (
    AddressCreate,
    AddressResponse,
    AddressUpdate,
)
from services.store_service.services import address_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/addresses", tags=["store"])


@router.get("", response_model=list[AddressResponse])
async def list_addresses(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Defaults first, then newest."""
    return await address_ops.list_addresses(db, current_user.user_id)


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def create_address(
    data: AddressCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await address_ops.create_address(
        db, current_user.user_id, data.model_dump()
    )


@router.get("/{address_id}", response_model=AddressResponse)
async def get_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await address_ops.get_address(db, current_user.user_id, address_id)


@router.patch("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: uuid.UUID,
    data: AddressUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await address_ops.update_address(
        db, current_user.user_id, address_id, data.model_dump(exclude_unset=True)
    )


@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await address_ops.delete_address(db, current_user.user_id, address_id)
