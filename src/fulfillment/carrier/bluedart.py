"""Blue Dart carrier. There is no API integration yet, so labels and pickups are always mocked."""

from fulfillment.carrier.port import CarrierPort, LabelRequest, LabelResult, PickupRequest, PickupResult
from shared.config import Settings


class BluedartCarrier(CarrierPort):
    name = "bluedart"
    prefix = "BD"

    @classmethod
    def from_settings(cls, settings: Settings) -> "BluedartCarrier":
        return cls(public_base_url=settings.public_base_url)

    @property
    def is_live(self) -> bool:
        return False

    def get_tracking_url(self, tracking_number: str) -> str:
        return f"https://www.bluedart.com/track?awb={tracking_number}"

    def _live_label(self, request: LabelRequest) -> LabelResult:
        return self.mock_label(request)

    def _live_pickup(self, request: PickupRequest) -> PickupResult:
        return self.mock_pickup(request)
