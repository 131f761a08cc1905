"""Shiprocket carrier.

Live flow for a label: log in for a bearer token, create an ad-hoc order,
assign an AWB to the resulting shipment, then request the label PDF.
Runs in mock mode unless SHIPROCKET_EMAIL and SHIPROCKET_PASSWORD are set.
"""

from datetime import date

import httpx
import structlog

from fulfillment.carrier.port import CarrierPort, LabelRequest, LabelResult, PickupRequest, PickupResult
from shared.config import Settings

logger = structlog.get_logger(__name__)


class ShiprocketCarrier(CarrierPort):
    name = "shiprocket"
    prefix = "SR"

    def __init__(
        self,
        email: str = "",
        password: str = "",
        base_url: str = "https://apiv2.shiprocket.in/v1",
        pickup_location: str = "Primary",
        channel_id: str = "",
        timeout: float = 10.0,
        public_base_url: str = "http://localhost:8000",
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(public_base_url)
        self.email = email
        self.password = password
        self.base_url = base_url.rstrip("/")
        self.pickup_location = pickup_location
        self.channel_id = channel_id
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ShiprocketCarrier":
        return cls(
            email=settings.shiprocket_email,
            password=settings.shiprocket_password,
            base_url=settings.shiprocket_api_base,
            pickup_location=settings.shiprocket_pickup_location,
            channel_id=settings.shiprocket_channel_id,
            timeout=settings.http_timeout_seconds,
            public_base_url=settings.public_base_url,
        )

    @property
    def is_live(self) -> bool:
        return bool(self.email and self.password)

    def get_tracking_url(self, tracking_number: str) -> str:
        return f"https://shiprocket.co/tracking/{tracking_number}"

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    def _login(self, client: httpx.Client) -> dict:
        response = client.post("/external/auth/login", json={"email": self.email, "password": self.password})
        response.raise_for_status()
        token = response.json().get("token")
        if not token:
            raise httpx.HTTPError("Shiprocket login returned no token")
        return {"Authorization": f"Bearer {token}"}

    def _order_payload(self, request: LabelRequest) -> dict:
        address = request.address
        return {
            "order_id": request.reference,
            "order_date": request.order_date or date.today().isoformat(),
            "pickup_location": self.pickup_location,
            "channel_id": self.channel_id,
            "billing_customer_name": f"{address.get('first_name', '')} {address.get('last_name', '')}".strip(),
            "billing_address": address.get("address1", ""),
            "billing_address_2": address.get("address2") or "",
            "billing_city": address.get("city", ""),
            "billing_pincode": address.get("zip_code", ""),
            "billing_state": address.get("state", ""),
            "billing_country": address.get("country") or "India",
            "billing_email": request.email or "",
            "billing_phone": address.get("phone") or "",
            "shipping_is_billing": True,
            "order_items": [
                {"name": item.name, "sku": item.sku, "units": item.units, "selling_price": item.selling_price}
                for item in request.items
            ],
            "payment_method": "COD" if request.is_cod else "Prepaid",
            "sub_total": request.sub_total,
            "length": request.dimensions.length,
            "breadth": request.dimensions.breadth,
            "height": request.dimensions.height,
            "weight": request.weight_kg,
            "cod_amount": request.collect_amount if request.is_cod else 0,
        }

    def _live_label(self, request: LabelRequest) -> LabelResult:
        try:
            with self._client() as client:
                headers = self._login(client)

                response = client.post(
                    "/external/orders/create/adhoc", json=self._order_payload(request), headers=headers
                )
                response.raise_for_status()
                shipment_id = response.json().get("shipment_id")

                awb = None
                label_url = None
                if shipment_id:
                    response = client.post("/courier/assign/awb", json={"shipment_id": shipment_id}, headers=headers)
                    response.raise_for_status()
                    awb = _awb_code(response.json())

                    response = client.post(
                        "/courier/generate/label", json={"shipment_id": [shipment_id]}, headers=headers
                    )
                    response.raise_for_status()
                    label_url = response.json().get("label_url")
        except (httpx.HTTPError, ValueError, KeyError, AttributeError, TypeError) as exc:
            logger.error("Shiprocket label generation failed", order_id=request.order_id, error=str(exc))
            return self.failed_label(request, str(exc))

        tracking_number = str(awb or shipment_id or request.reference)
        logger.info(
            "Shiprocket label generated",
            order_id=request.order_id,
            shipment_id=shipment_id,
            awb=awb,
        )
        return LabelResult(
            carrier=self.name,
            tracking_number=tracking_number,
            tracking_url=self.get_tracking_url(tracking_number),
            label_url=label_url,
            awb=awb,
            shipment_id=str(shipment_id) if shipment_id else None,
        )

    def _live_pickup(self, request: PickupRequest) -> PickupResult:
        if not request.shipment_id:
            return PickupResult(pickup_scheduled=False, error="Shiprocket pickups need a shipment_id")
        pickup_date = request.pickup_date or date.today().isoformat()
        try:
            with self._client() as client:
                headers = self._login(client)
                response = client.post(
                    "/courier/generate/pickup",
                    json={"shipment_id": [request.shipment_id], "pickup_date": [pickup_date]},
                    headers=headers,
                )
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise ValueError("Shiprocket pickup response is not an object")
        except (httpx.HTTPError, ValueError, KeyError, AttributeError, TypeError) as exc:
            logger.error("Shiprocket pickup failed", shipment_id=request.shipment_id, error=str(exc))
            return PickupResult(pickup_scheduled=False, error=str(exc))

        details = data.get("response")
        if not isinstance(details, dict):
            details = {}
        return PickupResult(
            pickup_scheduled=bool(data.get("pickup_status", 1)),
            pickup_id=str(details.get("pickup_token_number") or request.shipment_id),
            pickup_date=details.get("pickup_scheduled_date") or pickup_date,
            message=details.get("data") if isinstance(details.get("data"), str) else None,
        )


def _awb_code(body) -> str | None:
    """Pull ``response.data.awb_code`` out of an AWB assignment body.

    Shiprocket answers with ``null`` or a list in place of an object when the
    courier could not be assigned; those count as "no AWB".
    """
    if not isinstance(body, dict):
        return None
    response = body.get("response")
    if not isinstance(response, dict):
        return None
    data = response.get("data")
    if not isinstance(data, dict):
        return None
    return data.get("awb_code")
