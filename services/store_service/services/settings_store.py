"""Store settings persisted as key/value rows, plus client error reports.

Checkout reads the currency, tax and shipping settings and the guest
checkout flag. ``low_stock_threshold`` and ``maintenance_mode`` are only
stored and served back for the storefront and admin clients to act on.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from libs.common.config import get_settings
from libs.common.errors import ValidationError
from libs.common.logging import get_logger
from services.store_service.models import ClientErrorLog, StoreSetting
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Must be a number", {"value": str(value)})


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


SETTING_TYPES: dict[str, Callable[[Any], Any]] = {
    "site_name": str,
    "currency": lambda v: str(v).upper(),
    "tax_rate": _to_decimal,
    "free_shipping_threshold": _to_decimal,
    "low_stock_threshold": int,
    "allow_guest_checkout": _to_bool,
    "maintenance_mode": _to_bool,
}


def default_settings() -> dict[str, Any]:
    settings = get_settings()
    return {
        "site_name": settings.SITE_NAME,
        "currency": settings.CURRENCY,
        "tax_rate": settings.TAX_RATE,
        "free_shipping_threshold": settings.FREE_SHIPPING_THRESHOLD,
        "low_stock_threshold": settings.LOW_STOCK_THRESHOLD,
        "allow_guest_checkout": settings.ALLOW_GUEST_CHECKOUT,
        "maintenance_mode": False,
    }


def _validate(key: str, value: Any) -> Any:
    if key not in SETTING_TYPES:
        raise ValidationError(f"Unknown setting '{key}'", {"field": key})
    try:
        coerced = SETTING_TYPES[key](value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid value for '{key}'", {"field": key})

    if key == "tax_rate" and not (0 <= coerced <= 1):
        raise ValidationError("Tax rate must be between 0 and 1", {"field": key})
    if key in ("free_shipping_threshold", "low_stock_threshold") and coerced < 0:
        raise ValidationError(f"'{key}' cannot be negative", {"field": key})
    if key == "currency" and len(coerced) != 3:
        raise ValidationError("Currency must be a 3-letter code", {"field": key})
    return coerced


def _to_json(value: Any) -> Any:
    # Decimals are stored as strings so no precision is lost in JSON
    if isinstance(value, Decimal):
        return str(value)
    return value


async def get_store_settings(db: AsyncSession) -> dict[str, Any]:
    """Configuration defaults overlaid with whatever rows exist."""
    values = default_settings()
    result = await db.execute(select(StoreSetting))
    for row in result.scalars().all():
        if row.key in SETTING_TYPES and row.value is not None:
            values[row.key] = SETTING_TYPES[row.key](row.value)
    return values


async def update_store_settings(
    db: AsyncSession, changes: dict[str, Any], *, updated_by: Optional[str] = None
) -> dict[str, Any]:
    validated = {key: _validate(key, value) for key, value in changes.items()}

    for key, value in validated.items():
        row = await db.get(StoreSetting, key)
        if row is None:
            db.add(StoreSetting(key=key, value=_to_json(value), updated_by=updated_by))
        else:
            row.value = _to_json(value)
            row.updated_by = updated_by
    await db.commit()

    logger.info(
        "Store settings updated by %s: %s", updated_by or "system", sorted(validated)
    )
    return await get_store_settings(db)


async def record_client_error(
    db: AsyncSession,
    *,
    message: str,
    stack: Optional[str] = None,
    component_stack: Optional[str] = None,
    url: Optional[str] = None,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ClientErrorLog:
    entry = ClientErrorLog(
        message=message,
        stack=stack,
        component_stack=component_stack,
        url=url[:2048] if url else None,
        user_id=user_id,
        ip_address=ip_address[:45] if ip_address else None,
        user_agent=user_agent[:512] if user_agent else None,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    logger.warning("Client error reported from %s: %s", url or "unknown", message)
    return entry
