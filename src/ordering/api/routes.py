"""FastAPI routes for the Ordering domain: orders and coupons."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    CouponResponse,
    OrderResponse,
    PlaceOrderRequest,
    UpdateTrackingRequest,
    ValidateCouponRequest,
)
from ordering.checkout.placement import PlaceOrder
from ordering.order.order import Order
from ordering.order.tracking import UpdateTracking
from ordering.pricing.engine import PricingEngine


def _load_order(order_ref: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get_by_ref(order_ref)
    return OrderResponse.from_order(order)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest) -> OrderResponse:
    """Price the cart server-side and persist the order."""
    items_data = [
        {"product_id": line.product_id, "quantity": line.quantity, "variants": line.variants} for line in body.items
    ]
    command = PlaceOrder(
        email=body.email,
        customer_id=body.customer_id,
        items=json.dumps(items_data),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
        coupon_code=body.coupon_code,
        payment_method=body.payment_method,
        notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _load_order(order_id)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def fetch_order(order_id: str) -> OrderResponse:
    return _load_order(order_id)


@order_router.patch("/{order_id}/tracking", response_model=OrderResponse)
async def update_tracking(order_id: str, body: UpdateTrackingRequest) -> OrderResponse:
    command = UpdateTracking(
        order_id=order_id,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
        shipped_at=body.shipped_at,
        estimated_delivery=body.estimated_delivery,
        fulfillment_status=body.fulfillment_status,
    )
    updated_id = current_domain.process(command, asynchronous=False)
    return _load_order(updated_id)


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("/validate", response_model=CouponResponse)
async def validate_coupon(body: ValidateCouponRequest) -> CouponResponse:
    """Check a coupon before checkout. Does not reserve a use."""
    coupon, discount = PricingEngine().check_coupon(body.code, body.subtotal)
    return CouponResponse(
        code=coupon.code,
        type=coupon.type,
        value=coupon.value,
        min_amount=coupon.min_amount,
        max_discount=coupon.max_discount,
        discount=discount if body.subtotal is not None else None,
        valid_to=coupon.valid_to,
    )
