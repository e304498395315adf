"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from services.store_service.models import (
    AddressType,
    CouponType,
    OrderStatus,
    PaymentStatus,
    ShippingMethod,
)

# ============================================================================
# ADDRESS SCHEMAS
# ============================================================================


class AddressFields(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    company: Optional[str] = Field(None, max_length=255)
    address1: str = Field(..., min_length=1, max_length=255)
    address2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=100)


class AddressCreate(AddressFields):
    type: AddressType = AddressType.SHIPPING
    is_default: bool = False


class AddressUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    company: Optional[str] = Field(None, max_length=255)
    address1: Optional[str] = Field(None, min_length=1, max_length=255)
    address2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, min_length=1, max_length=20)
    country: Optional[str] = Field(None, min_length=2, max_length=100)
    type: Optional[AddressType] = None
    is_default: Optional[bool] = None


class AddressResponse(AddressFields):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    type: AddressType
    is_default: bool
    created_at: datetime
    updated_at: datetime


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    sku: str
    quantity: int
    price: Decimal
    total: Decimal


class OrderHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: OrderStatus
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime


class OrderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: Optional[uuid.UUID] = None
    email: str
    status: OrderStatus
    payment_status: PaymentStatus
    subtotal: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    currency: str
    coupon_code: Optional[str] = None
    shipping_method: str
    items: list[OrderItemResponse] = []
    created_at: datetime
    updated_at: datetime


class OrderResponse(OrderSummary):
    phone: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    shipping_address: Optional[AddressResponse] = None
    billing_address: Optional[AddressResponse] = None
    history: list[OrderHistoryResponse] = []
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    next_status: Optional[OrderStatus] = None
    estimated_delivery: Optional[datetime] = None


class OrderListResponse(BaseModel):
    orders: list[OrderSummary]
    total: int
    page: int
    limit: int
    pages: int


class OrderStatsResponse(BaseModel):
    total: int
    pending: int
    confirmed: int
    processing: int
    shipped: int
    delivered: int
    cancelled: int
    refunded: int
    pending_payments: int
    by_payment_status: dict[str, int]
    total_revenue: Decimal


class OrderStatusUpdate(BaseModel):
    """Status stays a plain string so unknown values surface as domain errors."""

    status: str = Field(..., min_length=1)
    notes: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: str = Field(..., min_length=1)


class BulkStatusUpdate(BaseModel):
    order_ids: list[str] = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    notes: Optional[str] = None


class BulkResultItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    success: bool
    status: Optional[OrderStatus] = None
    error: Optional[str] = None
    code: Optional[str] = None


class BulkStatusResponse(BaseModel):
    results: list[BulkResultItem]
    succeeded: int
    failed: int


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class CheckoutItem(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class CheckoutRequest(BaseModel):
    items: list[CheckoutItem] = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    shipping_address: AddressFields
    billing_address: Optional[AddressFields] = None
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    coupon_code: Optional[str] = Field(None, max_length=50)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


# ============================================================================
# COUPON SCHEMAS
# ============================================================================


class CouponBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    type: CouponType
    value: Decimal = Field(Decimal("0"), ge=0)
    minimum_amount: Optional[Decimal] = Field(None, ge=0)
    maximum_discount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: bool = True
    valid_from: datetime
    valid_until: Optional[datetime] = None


class CouponCreate(CouponBase):
    pass


class CouponUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    type: Optional[CouponType] = None
    value: Optional[Decimal] = Field(None, ge=0)
    minimum_amount: Optional[Decimal] = Field(None, ge=0)
    maximum_discount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None


class CouponResponse(CouponBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    used_count: int
    created_at: datetime
    updated_at: datetime


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    cart_total: Decimal = Field(..., ge=0)


class AppliedCoupon(BaseModel):
    id: uuid.UUID
    code: str
    type: CouponType
    description: Optional[str] = None
    discount_amount: Decimal
    free_shipping: bool


class CouponValidateResponse(BaseModel):
    valid: bool
    coupon: AppliedCoupon


class CouponRedeemRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


# ============================================================================
# SETTINGS / CLIENT ERROR SCHEMAS
# ============================================================================


class StoreSettingsResponse(BaseModel):
    site_name: str
    currency: str
    tax_rate: Decimal
    free_shipping_threshold: Decimal
    low_stock_threshold: int
    allow_guest_checkout: bool
    maintenance_mode: bool


class StoreSettingsUpdate(BaseModel):
    site_name: Optional[str] = Field(None, min_length=1, max_length=255)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    free_shipping_threshold: Optional[Decimal] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    allow_guest_checkout: Optional[bool] = None
    maintenance_mode: Optional[bool] = None


class ClientErrorReport(BaseModel):
    message: str = Field(..., min_length=1)
    stack: Optional[str] = None
    component_stack: Optional[str] = None
    url: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        return v.strip()[:10000]


class ClientErrorAck(BaseModel):
    success: bool = True
    id: uuid.UUID
