"""Ordering events consumed by the ERP bridge.

Placement and payment both try to mirror the order as a sales order; the
push is idempotent, so the second attempt is a no-op once linked. A failed
push is logged here and picked up again by the worker's ERP loop.
"""

import structlog
from protean.utils.mixins import handle

from erp.sync.order_push import OrderPush, PushStatus
from ordering.order.events import OrderPlaced, PaymentConfirmed
from ordering.order.order import Order
from shared.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.event_handler(part_of=Order, stream_category="storefront::order")
class ErpOrderSyncHandler:
    def _push(self, order_id: str, trigger: str) -> None:
        try:
            result = OrderPush().push(order_id)
        except Exception as exc:
            logger.error("ERP push handler failed", order_id=order_id, trigger=trigger, error=str(exc))
            return
        if result.status == PushStatus.FAILED:
            logger.warning("ERP push deferred to worker", order_id=order_id, trigger=trigger, error=result.error)

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        self._push(event.order_id, "order_placed")

    @handle(PaymentConfirmed)
    def on_payment_confirmed(self, event: PaymentConfirmed) -> None:
        self._push(event.order_id, "payment_confirmed")
