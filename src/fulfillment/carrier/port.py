"""Carrier port: the capability set every shipping carrier implements.

Application code programs against ``CarrierPort`` and looks carriers up by
identifier in the registry (``fulfillment.carrier.get_carrier``). Each
carrier decides on its own whether live credentials are configured; without
them it answers with deterministic mock values so local checkouts and tests
never reach a real courier.

Live failures never raise out of ``generate_label`` or ``schedule_pickup``:
they come back as results with ``error`` set.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class LineItem:
    name: str
    sku: str
    units: int
    selling_price: float


@dataclass(frozen=True)
class ParcelDimensions:
    """Parcel size in centimetres."""

    length: float = 10
    breadth: float = 10
    height: float = 10


@dataclass(frozen=True)
class LabelRequest:
    order_id: str
    order_number: str | None = None
    order_date: str | None = None
    items: tuple[LineItem, ...] = ()
    address: dict = field(default_factory=dict)
    email: str | None = None
    sub_total: float = 0.0
    weight_kg: float = 0.5
    dimensions: ParcelDimensions = field(default_factory=ParcelDimensions)
    collect_amount: float = 0.0

    @property
    def reference(self) -> str:
        """The id carriers see: the order number when there is one."""
        return self.order_number or self.order_id

    @property
    def is_cod(self) -> bool:
        return self.collect_amount > 0


@dataclass(frozen=True)
class LabelResult:
    carrier: str
    tracking_number: str
    tracking_url: str
    label_url: str | None = None
    awb: str | None = None
    shipment_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PickupRequest:
    shipment_id: str | None = None
    awb: str | None = None
    pickup_date: str | None = None
    address: dict | None = None


@dataclass(frozen=True)
class PickupResult:
    pickup_scheduled: bool
    pickup_id: str | None = None
    pickup_date: str | None = None
    message: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class TrackingResult:
    tracking_url: str
    status: str = "unknown"
    details: dict = field(default_factory=dict)


class CarrierPort(ABC):
    """Base class for carrier strategies.

    Subclasses set ``name`` (registry identifier) and ``prefix`` (used in
    mock identifiers) and implement the live calls.
    """

    name: str = ""
    prefix: str = ""

    def __init__(self, public_base_url: str = "http://localhost:8000"):
        self.public_base_url = public_base_url.rstrip("/")

    @property
    @abstractmethod
    def is_live(self) -> bool:
        """True when credentials for the real carrier API are configured."""
        ...

    @abstractmethod
    def get_tracking_url(self, tracking_number: str) -> str:
        ...

    @abstractmethod
    def _live_label(self, request: LabelRequest) -> LabelResult:
        ...

    @abstractmethod
    def _live_pickup(self, request: PickupRequest) -> PickupResult:
        ...

    def generate_label(self, request: LabelRequest) -> LabelResult:
        if not self.is_live:
            return self.mock_label(request)
        return self._live_label(request)

    def schedule_pickup(self, request: PickupRequest) -> PickupResult:
        if not self.is_live:
            return self.mock_pickup(request)
        return self._live_pickup(request)

    def track(self, tracking_number: str) -> TrackingResult:
        return TrackingResult(tracking_url=self.get_tracking_url(tracking_number))

    def mock_label(self, request: LabelRequest) -> LabelResult:
        tracking_number = f"{self.prefix}-MOCK-{request.order_id}"
        return LabelResult(
            carrier=self.name,
            tracking_number=tracking_number,
            tracking_url=self.get_tracking_url(tracking_number),
            label_url=f"{self.public_base_url}/uploads/mock-label-{self.name}-{request.order_id}.pdf",
            awb=tracking_number,
        )

    def mock_pickup(self, request: PickupRequest) -> PickupResult:
        reference = request.awb or request.shipment_id or "X"
        return PickupResult(
            pickup_scheduled=True,
            pickup_id=f"{self.prefix}-PICKUP-MOCK-{reference}",
            pickup_date=request.pickup_date or date.today().isoformat(),
            message=f"Mock pickup scheduled with {self.name}",
        )

    def failed_label(self, request: LabelRequest, error: str) -> LabelResult:
        tracking_number = f"{self.prefix}-ERR-{request.order_id}"
        return LabelResult(
            carrier=self.name,
            tracking_number=tracking_number,
            tracking_url=self.get_tracking_url(tracking_number),
            error=error,
        )
