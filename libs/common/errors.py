"""Domain error taxonomy shared by store operations.

Each error carries the HTTP status it maps to at the API boundary, a stable
machine-readable ``code`` and optional structured ``details``.
"""

import enum
from typing import Any, Optional


class StoreError(Exception):
    status_code = 500
    code = "STORE_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        body.update(self.details)
        return body


class ValidationError(StoreError):
    """Malformed or missing input."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(StoreError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any = None):
        message = f"{entity} not found"
        details = {"entity": entity}
        if identifier is not None:
            details["id"] = str(identifier)
        super().__init__(message, details)
        self.entity = entity


class InvalidTransition(StoreError):
    status_code = 400
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, attempted: str):
        super().__init__(
            f"Cannot change order status from {current} to {attempted}",
            {"current": current, "attempted": attempted},
        )
        self.current = current
        self.attempted = attempted


class InvalidPaymentStatus(StoreError):
    status_code = 400
    code = "INVALID_PAYMENT_STATUS"

    def __init__(self, value: Any):
        super().__init__("Invalid payment status", {"attempted": str(value)})
        self.value = value


class CouponErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    NOT_YET_VALID = "NOT_YET_VALID"
    USAGE_LIMIT_EXCEEDED = "USAGE_LIMIT_EXCEEDED"
    BELOW_MINIMUM = "BELOW_MINIMUM"


_COUPON_MESSAGES = {
    CouponErrorKind.NOT_FOUND: "Invalid coupon code",
    CouponErrorKind.INACTIVE: "Coupon is not active",
    CouponErrorKind.EXPIRED: "Coupon has expired",
    CouponErrorKind.NOT_YET_VALID: "Coupon is not yet valid",
    CouponErrorKind.USAGE_LIMIT_EXCEEDED: "Coupon usage limit exceeded",
}


class CouponError(StoreError):
    code = "COUPON_ERROR"

    def __init__(self, kind: CouponErrorKind, message: Optional[str] = None):
        super().__init__(
            message or _COUPON_MESSAGES.get(kind, "Coupon cannot be applied"),
            {"reason": kind.value},
        )
        self.kind = kind
        self.status_code = 404 if kind == CouponErrorKind.NOT_FOUND else 400


class ConflictError(StoreError):
    status_code = 409
    code = "CONFLICT"


class PersistenceError(StoreError):
    """Storage collaborator failure. The caller only ever sees a generic message."""

    status_code = 500
    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
