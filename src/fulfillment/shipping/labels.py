"""Shipping labels, pickups and tracking lookups: commands and handler.

Label generation reads the order's snapshots (items and shipping address)
so the carrier ships exactly what was sold. The resulting carrier, tracking
number and label URL are written back onto the order; a failure to write
them is logged and the label is still returned, since the courier already
holds the shipment.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from fulfillment.carrier import get_carrier
from fulfillment.carrier.port import (
    LabelRequest,
    LabelResult,
    LineItem,
    ParcelDimensions,
    PickupRequest,
    PickupResult,
    TrackingResult,
)
from ordering.order.order import Order
from shared.domain import storefront

logger = structlog.get_logger(__name__)

DEFAULT_WEIGHT_KG = 0.5


@dataclass
class GenerateLabel:
    provider: str
    order_id: str | None = None
    order_number: str | None = None
    weight_kg: float | None = None
    dimensions_cm: dict | None = None
    collect_amount: float | None = None


@dataclass
class SchedulePickup:
    provider: str
    shipment_id: str | None = None
    awb: str | None = None
    pickup_date: str | None = None
    address: dict | None = None


@dataclass
class TrackShipment:
    provider: str
    tracking_number: str


@storefront.command(part_of="Order")
class RecordShippingLabel:
    order_id = Identifier(required=True)
    carrier = String(required=True, max_length=50)
    tracking_number = String(max_length=100)
    label_url = String(max_length=500)


@storefront.command_handler(part_of=Order)
class RecordShippingLabelHandler:
    @handle(RecordShippingLabel)
    def record_label(self, command: RecordShippingLabel):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_label(command.carrier, command.tracking_number, command.label_url)
        repo.add(order)
        return str(order.id)


class ShippingHandler:
    def generate_label(self, command: GenerateLabel) -> LabelResult:
        carrier = get_carrier(command.provider)
        request = self._label_request(command)
        result = carrier.generate_label(request)
        if result.ok:
            self._record_label(request.order_id, result)
        else:
            logger.warning(
                "Carrier returned an error for label",
                carrier=carrier.name,
                order_id=request.order_id,
                error=result.error,
            )
        return result

    def schedule_pickup(self, command: SchedulePickup) -> PickupResult:
        carrier = get_carrier(command.provider)
        result = carrier.schedule_pickup(
            PickupRequest(
                shipment_id=command.shipment_id,
                awb=command.awb,
                pickup_date=command.pickup_date,
                address=command.address,
            )
        )
        logger.info(
            "Pickup requested",
            carrier=carrier.name,
            pickup_id=result.pickup_id,
            scheduled=result.pickup_scheduled,
            error=result.error,
        )
        return result

    def track(self, command: TrackShipment) -> TrackingResult:
        if not command.tracking_number:
            raise ValidationError({"tracking_number": ["Tracking number is required"]})
        return get_carrier(command.provider).track(command.tracking_number)

    def _label_request(self, command: GenerateLabel) -> LabelRequest:
        order_ref = command.order_id or command.order_number
        if not order_ref:
            raise ValidationError({"order_id": ["order_id or order_number is required"]})

        dimensions = ParcelDimensions(**(command.dimensions_cm or {}))
        order = current_domain.repository_for(Order).get_by_ref(order_ref)
        return LabelRequest(
            order_id=str(order.id),
            order_number=order.order_number,
            order_date=order.created_at.strftime("%Y-%m-%d %H:%M"),
            items=tuple(
                LineItem(
                    name=item.product_name,
                    sku=str(item.product_id),
                    units=item.quantity,
                    selling_price=float(item.unit_price),
                )
                for item in order.sorted_items
            ),
            address=order.shipping_address.to_dict(),
            email=order.email,
            sub_total=float(order.total),
            weight_kg=command.weight_kg or DEFAULT_WEIGHT_KG,
            dimensions=dimensions,
            collect_amount=command.collect_amount or 0.0,
        )

    def _record_label(self, order_id: str, result: LabelResult) -> None:
        try:
            current_domain.process(
                RecordShippingLabel(
                    order_id=order_id,
                    carrier=result.carrier,
                    tracking_number=result.tracking_number,
                    label_url=result.label_url,
                ),
                asynchronous=False,
            )
        except Exception as exc:
            logger.error(
                "Failed to persist label on order",
                order_id=order_id,
                tracking_number=result.tracking_number,
                error=str(exc),
            )
            return
        logger.info(
            "Shipping label recorded",
            order_id=order_id,
            carrier=result.carrier,
            tracking_number=result.tracking_number,
        )
