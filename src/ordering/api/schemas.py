"""Pydantic request/response schemas for the Ordering API.

These are external contracts, kept separate from the internal commands.
Request lines may carry a ``price`` field; it is accepted for client
convenience and never read.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = ""
    company: str | None = None
    address1: str = Field(min_length=1)
    address2: str | None = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = "India"
    phone: str | None = None


class OrderLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    variants: dict[str, str | int | float] = Field(default_factory=dict)
    price: float | None = None  # ignored


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    email: EmailStr
    customer_id: str | None = None
    items: list[OrderLineSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    coupon_code: str | None = None
    payment_method: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "email": "asha@example.com",
                    "items": [{"product_id": "prod-001", "quantity": 2, "variants": {"Color": "Red"}}],
                    "shipping_address": {
                        "first_name": "Asha",
                        "last_name": "Rao",
                        "address1": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "zip_code": "560001",
                        "country": "India",
                        "phone": "+919800000000",
                    },
                    "coupon_code": "SAVE10",
                    "payment_method": "razorpay",
                }
            ]
        }
    }


class UpdateTrackingRequest(BaseModel):
    tracking_number: str | None = None
    carrier: str | None = None
    shipped_at: datetime | None = None
    estimated_delivery: datetime | None = None
    fulfillment_status: str | None = None


class ValidateCouponRequest(BaseModel):
    code: str = ""
    subtotal: float | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class AddressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    first_name: str
    last_name: str | None = ""
    company: str | None = None
    address1: str
    address2: str | None = None
    city: str
    state: str
    zip_code: str
    country: str
    phone: str | None = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    variants: dict | None = None

    @field_validator("id", "product_id", mode="before")
    @classmethod
    def _as_str(cls, value):
        return str(value)


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    email: str
    customer_id: str | None = None
    subtotal: float
    discount: float
    shipping: float
    taxes: float
    total: float
    currency: str
    financial_status: str
    fulfillment_status: str
    payment_method: str | None = None
    payment_id: str | None = None
    coupon_code: str | None = None
    external_erp_id: int | None = None
    carrier: str | None = None
    tracking_number: str | None = None
    label_url: str | None = None
    shipped_at: datetime | None = None
    estimated_delivery: datetime | None = None
    created_at: datetime
    items: list[OrderItemResponse]
    shipping_address: AddressResponse
    billing_address: AddressResponse | None = None
    gateway_order_ref: str | None = None
    last_payment_error: str | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            **{name: getattr(order, name) for name in _ORDER_SCALARS},
            id=str(order.id),
            customer_id=str(order.customer_id) if order.customer_id else None,
            items=[OrderItemResponse.model_validate(item) for item in order.sorted_items],
            shipping_address=AddressResponse.model_validate(order.shipping_address),
            billing_address=AddressResponse.model_validate(order.billing_address) if order.billing_address else None,
        )


_ORDER_SCALARS = (
    "order_number",
    "email",
    "subtotal",
    "discount",
    "shipping",
    "taxes",
    "total",
    "currency",
    "financial_status",
    "fulfillment_status",
    "payment_method",
    "payment_id",
    "gateway_order_ref",
    "last_payment_error",
    "coupon_code",
    "external_erp_id",
    "carrier",
    "tracking_number",
    "label_url",
    "shipped_at",
    "estimated_delivery",
    "created_at",
)


class CouponResponse(BaseModel):
    code: str
    type: str
    value: float
    min_amount: float | None = None
    max_discount: float | None = None
    discount: float | None = None
    valid_to: datetime | None = None
