"""FastAPI routes for the ERP bridge: operator-triggered catalogue pull and order push."""

from dataclasses import asdict

from fastapi import APIRouter
from protean.utils.globals import current_domain

from erp.api.schemas import PushResultResponse, SyncResultResponse
from erp.sync.catalog_sync import CatalogSync
from erp.sync.order_push import PushOrderToErp
from ordering.order.order import Order

erp_router = APIRouter(prefix="/erp", tags=["erp"])


@erp_router.post("/sync/products", response_model=SyncResultResponse)
async def sync_products(limit: int = 100) -> SyncResultResponse:
    """Pull saleable product templates from the ERP into the catalogue."""
    result = CatalogSync().pull(limit=limit)
    return SyncResultResponse(**asdict(result))


@erp_router.post("/orders/{order_id}/push", response_model=PushResultResponse)
async def push_order(order_id: str) -> PushResultResponse:
    # Unknown orders are a 404 here; the push itself reports failures in its result
    order = current_domain.repository_for(Order).get_by_ref(order_id)
    result = current_domain.process(PushOrderToErp(order_id=order.id), asynchronous=False)
    return PushResultResponse(**result)
