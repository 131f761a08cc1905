"""Order tracking update: command and handler."""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.order.order import Order
from shared.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class UpdateTracking:
    """Partial update of carrier and fulfillment fields. Omitted fields keep their values."""

    order_id = Identifier(required=True)
    tracking_number = String(max_length=100)
    carrier = String(max_length=50)
    shipped_at = DateTime()
    estimated_delivery = DateTime()
    fulfillment_status = String(max_length=20)


@storefront.command_handler(part_of=Order)
class UpdateTrackingHandler:
    @handle(UpdateTracking)
    def update_tracking(self, command: UpdateTracking):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_ref(command.order_id)
        order.update_tracking(
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            shipped_at=command.shipped_at,
            estimated_delivery=command.estimated_delivery,
            fulfillment_status=command.fulfillment_status,
        )
        repo.add(order)

        logger.info(
            "Order tracking updated",
            order_id=order.id,
            carrier=order.carrier,
            tracking_number=order.tracking_number,
            fulfillment_status=order.fulfillment_status,
        )
        return str(order.id)
