"""FastAPI routes for shipping: labels, pickups and tracking links."""

from dataclasses import asdict

from fastapi import APIRouter

from fulfillment.api.schemas import (
    GenerateLabelRequest,
    LabelResponse,
    LabelSchema,
    PickupResponse,
    PickupSchema,
    SchedulePickupRequest,
    TrackingResponse,
)
from fulfillment.shipping.labels import GenerateLabel, SchedulePickup, ShippingHandler, TrackShipment

shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipping_router.post("/label", response_model=LabelResponse)
async def generate_label(body: GenerateLabelRequest) -> LabelResponse:
    """Issue a shipping label for an order and record it on the order."""
    command = GenerateLabel(
        provider=body.provider,
        order_id=body.order_id,
        order_number=body.order_number,
        weight_kg=body.weight_kg,
        dimensions_cm=body.dimensions_cm.model_dump() if body.dimensions_cm else None,
        collect_amount=body.collect_amount,
    )
    result = ShippingHandler().generate_label(command)
    return LabelResponse(label=LabelSchema(**asdict(result)))


@shipping_router.post("/pickup", response_model=PickupResponse)
async def schedule_pickup(body: SchedulePickupRequest) -> PickupResponse:
    command = SchedulePickup(**body.model_dump())
    result = ShippingHandler().schedule_pickup(command)
    return PickupResponse(pickup=PickupSchema(**asdict(result)))


@shipping_router.get("/track", response_model=TrackingResponse)
async def track(provider: str, tracking_number: str) -> TrackingResponse:
    result = ShippingHandler().track(TrackShipment(provider=provider, tracking_number=tracking_number))
    return TrackingResponse(tracking_url=result.tracking_url, details={"status": result.status, **result.details})
