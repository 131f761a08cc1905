"""Pydantic request/response schemas for the shipping API."""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class DimensionsSchema(BaseModel):
    length: float = Field(10, gt=0)
    breadth: float = Field(10, gt=0)
    height: float = Field(10, gt=0)


class GenerateLabelRequest(BaseModel):
    provider: str
    order_id: str | None = None
    order_number: str | None = None
    weight_kg: float | None = Field(None, gt=0)
    dimensions_cm: DimensionsSchema | None = None
    collect_amount: float | None = Field(None, ge=0)


class SchedulePickupRequest(BaseModel):
    provider: str
    shipment_id: str | None = None
    awb: str | None = None
    pickup_date: str | None = None
    address: dict | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class LabelSchema(BaseModel):
    carrier: str
    tracking_number: str
    tracking_url: str
    label_url: str | None = None
    awb: str | None = None
    shipment_id: str | None = None
    error: str | None = None


class LabelResponse(BaseModel):
    label: LabelSchema


class PickupSchema(BaseModel):
    pickup_scheduled: bool
    pickup_id: str | None = None
    pickup_date: str | None = None
    message: str | None = None
    error: str | None = None


class PickupResponse(BaseModel):
    pickup: PickupSchema


class TrackingResponse(BaseModel):
    tracking_url: str
    details: dict
