"""Small shared helpers for store operations."""

import uuid
from typing import Any

from libs.common.errors import NotFoundError


def parse_uuid(value: Any, entity: str) -> uuid.UUID:
    """Coerce ``value`` to a UUID; malformed ids are reported as missing ``entity``."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(entity, value)
