"""Per-user address book.

At most one default address exists per user per type scope. BOTH overlaps
SHIPPING and BILLING, so marking a BOTH address default clears every other
default for that user.
"""

from typing import Any, Optional

from libs.common.errors import NotFoundError
from libs.common.logging import get_logger
from services.store_service.models import Address, AddressType
from services.store_service.services._helpers import parse_uuid
from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def overlapping_types(address_type: AddressType) -> set[AddressType]:
    if address_type == AddressType.BOTH:
        return set(AddressType)
    return {address_type, AddressType.BOTH}


async def _clear_defaults(
    db: AsyncSession,
    user_id,
    address_type: AddressType,
    keep_id: Optional[Any] = None,
) -> None:
    """Unset conflicting defaults. Runs inside the caller's transaction."""
    stmt = update(Address).where(
        Address.user_id == user_id,
        Address.is_default.is_(True),
        Address.type.in_(overlapping_types(address_type)),
    )
    if keep_id is not None:
        stmt = stmt.where(Address.id != keep_id)
    await db.execute(
        stmt.values(is_default=False).execution_options(synchronize_session="fetch")
    )


async def list_addresses(db: AsyncSession, user_id: Any) -> list[Address]:
    result = await db.execute(
        select(Address)
        .where(Address.user_id == parse_uuid(user_id, "User"))
        .order_by(desc(Address.is_default), desc(Address.created_at))
    )
    return list(result.scalars().all())


async def get_address(db: AsyncSession, user_id: Any, address_id: Any) -> Address:
    """Fetch one of the user's addresses; anyone else's is reported missing."""
    address = await db.get(Address, parse_uuid(address_id, "Address"))
    if address is None or address.user_id != parse_uuid(user_id, "User"):
        raise NotFoundError("Address", address_id)
    return address


async def create_address(
    db: AsyncSession, user_id: Any, data: dict[str, Any]
) -> Address:
    owner_id = parse_uuid(user_id, "User")
    address_type = AddressType(data.get("type") or AddressType.SHIPPING)
    is_default = bool(data.get("is_default"))

    if is_default:
        await _clear_defaults(db, owner_id, address_type)

    fields = {k: v for k, v in data.items() if k not in ("type", "is_default")}
    address = Address(
        user_id=owner_id, type=address_type, is_default=is_default, **fields
    )
    db.add(address)
    await db.commit()
    await db.refresh(address)

    logger.info(
        "Created %s address %s for user %s (default=%s)",
        address_type.value,
        address.id,
        owner_id,
        is_default,
    )
    return address


async def update_address(
    db: AsyncSession, user_id: Any, address_id: Any, changes: dict[str, Any]
) -> Address:
    address = await get_address(db, user_id, address_id)

    if changes.get("type") is not None:
        changes["type"] = AddressType(changes["type"])
    address_type = changes.get("type") or address.type
    becomes_default = changes.get("is_default", address.is_default)

    # A type change on a default address can widen its scope too
    if becomes_default:
        await _clear_defaults(db, address.user_id, address_type, keep_id=address.id)

    for field, value in changes.items():
        setattr(address, field, value)
    await db.commit()
    await db.refresh(address)

    logger.info("Updated address %s fields=%s", address.id, sorted(changes))
    return address


async def delete_address(db: AsyncSession, user_id: Any, address_id: Any) -> None:
    address = await get_address(db, user_id, address_id)
    await db.delete(address)
    await db.commit()
    logger.info("Deleted address %s", address.id)
