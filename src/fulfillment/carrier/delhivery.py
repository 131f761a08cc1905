"""Delhivery carrier.

Live mode (DELHIVERY_TOKEN set) creates a manifest through the CMU API,
which allots the waybill, then fetches the packing slip for the label.
"""

import json
from datetime import date

import httpx
import structlog

from fulfillment.carrier.port import CarrierPort, LabelRequest, LabelResult, PickupRequest, PickupResult
from shared.config import Settings

logger = structlog.get_logger(__name__)


class DelhiveryCarrier(CarrierPort):
    name = "delhivery"
    prefix = "DLV"

    def __init__(
        self,
        token: str = "",
        base_url: str = "https://track.delhivery.com",
        pickup_location: str = "Primary",
        timeout: float = 10.0,
        public_base_url: str = "http://localhost:8000",
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(public_base_url)
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.pickup_location = pickup_location
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "DelhiveryCarrier":
        return cls(
            token=settings.delhivery_token,
            base_url=settings.delhivery_api_base,
            pickup_location=settings.delhivery_pickup_location,
            timeout=settings.http_timeout_seconds,
            public_base_url=settings.public_base_url,
        )

    @property
    def is_live(self) -> bool:
        return bool(self.token)

    def get_tracking_url(self, tracking_number: str) -> str:
        return f"https://www.delhivery.com/track/{tracking_number}"

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Token {self.token}", "Accept": "application/json"},
        )

    def _shipment(self, request: LabelRequest) -> dict:
        address = request.address
        return {
            "name": f"{address.get('first_name', '')} {address.get('last_name', '')}".strip(),
            "add": ", ".join(filter(None, [address.get("address1"), address.get("address2")])),
            "pin": address.get("zip_code", ""),
            "city": address.get("city", ""),
            "state": address.get("state", ""),
            "country": address.get("country") or "India",
            "phone": address.get("phone") or "",
            "order": request.reference,
            "payment_mode": "COD" if request.is_cod else "Prepaid",
            "cod_amount": request.collect_amount if request.is_cod else 0,
            "total_amount": request.sub_total,
            "products_desc": ", ".join(item.name for item in request.items),
            "quantity": sum(item.units for item in request.items),
            "weight": round(request.weight_kg * 1000),
            "shipment_length": request.dimensions.length,
            "shipment_width": request.dimensions.breadth,
            "shipment_height": request.dimensions.height,
        }

    def _live_label(self, request: LabelRequest) -> LabelResult:
        manifest = {"shipments": [self._shipment(request)], "pickup_location": {"name": self.pickup_location}}
        try:
            with self._client() as client:
                # CMU expects a form field holding the JSON document
                response = client.post(
                    "/api/cmu/create.json",
                    data={"format": "json", "data": json.dumps(manifest)},
                )
                response.raise_for_status()
                packages = response.json().get("packages") or []
                if not packages or not packages[0].get("waybill"):
                    return self.failed_label(request, f"Delhivery returned no waybill: {response.text[:200]}")
                waybill = packages[0]["waybill"]

                response = client.get("/api/p/packing_slip", params={"wbns": waybill, "pdf": "true"})
                response.raise_for_status()
                slips = response.json().get("packages") or []
                label_url = slips[0].get("pdf_download_link") if slips else None
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Delhivery label generation failed", order_id=request.order_id, error=str(exc))
            return self.failed_label(request, str(exc))

        logger.info("Delhivery label generated", order_id=request.order_id, waybill=waybill)
        return LabelResult(
            carrier=self.name,
            tracking_number=waybill,
            tracking_url=self.get_tracking_url(waybill),
            label_url=label_url,
            awb=waybill,
        )

    def _live_pickup(self, request: PickupRequest) -> PickupResult:
        pickup_date = request.pickup_date or date.today().isoformat()
        try:
            with self._client() as client:
                response = client.post(
                    "/fm/request/new/",
                    json={
                        "pickup_location": self.pickup_location,
                        "pickup_date": pickup_date,
                        "pickup_time": "14:00:00",
                        "expected_package_count": 1,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Delhivery pickup failed", awb=request.awb, error=str(exc))
            return PickupResult(pickup_scheduled=False, error=str(exc))

        return PickupResult(
            pickup_scheduled=True,
            pickup_id=str(data.get("pickup_id") or ""),
            pickup_date=data.get("pickup_date") or pickup_date,
        )
