"""Application tests for label generation, pickups and tracking lookups."""

import pytest
from fulfillment.carrier import register_carrier
from fulfillment.carrier.bluedart import BluedartCarrier
from fulfillment.carrier.port import LabelResult
from fulfillment.shipping.labels import GenerateLabel, SchedulePickup, ShippingHandler, TrackShipment
from ordering.order.order import Order
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _reload(order_id):
    return current_domain.repository_for(Order).get(order_id)


class _CapturingCarrier(BluedartCarrier):
    """Records the label request and answers in mock mode."""

    def __init__(self):
        super().__init__()
        self.requests = []

    def generate_label(self, request):
        self.requests.append(request)
        return super().generate_label(request)


class _BrokenCarrier(BluedartCarrier):
    def generate_label(self, request):
        return self.failed_label(request, "pincode not serviceable")


class TestGenerateLabel:
    def test_label_recorded_on_order(self, make_order):
        order = make_order()

        result = ShippingHandler().generate_label(GenerateLabel(provider="shiprocket", order_id=order.id))

        assert result.tracking_number == f"SR-MOCK-{order.id}"
        stored = _reload(order.id)
        assert stored.carrier == "shiprocket"
        assert stored.tracking_number == result.tracking_number
        assert stored.label_url == result.label_url

    def test_lookup_by_order_number(self, make_order):
        order = make_order()
        result = ShippingHandler().generate_label(GenerateLabel(provider="delhivery", order_number=order.order_number))
        assert result.tracking_number == f"DLV-MOCK-{order.id}"

    def test_request_built_from_order_snapshots(self, make_order, make_product, shipping_address):
        carrier = _CapturingCarrier()
        register_carrier(carrier)
        order = make_order(product=make_product(name="Silk Saree", base_price=2500), quantity=2)

        ShippingHandler().generate_label(
            GenerateLabel(
                provider="bluedart",
                order_id=order.id,
                weight_kg=1.2,
                dimensions_cm={"length": 30, "breadth": 20, "height": 5},
                collect_amount=500,
            )
        )

        request = carrier.requests[0]
        assert request.order_number == order.order_number
        assert request.items[0].name == "Silk Saree"
        assert request.items[0].units == 2
        assert request.items[0].selling_price == 2500.0
        assert request.address["city"] == shipping_address["city"]
        assert request.sub_total == order.total
        assert request.weight_kg == 1.2
        assert request.dimensions.length == 30
        assert request.is_cod

    def test_weight_defaults(self, make_order):
        carrier = _CapturingCarrier()
        register_carrier(carrier)
        order = make_order()

        ShippingHandler().generate_label(GenerateLabel(provider="bluedart", order_id=order.id))

        assert carrier.requests[0].weight_kg == 0.5
        assert carrier.requests[0].dimensions.height == 10
        assert not carrier.requests[0].is_cod

    def test_error_result_not_recorded(self, make_order):
        register_carrier(_BrokenCarrier())
        order = make_order()

        result = ShippingHandler().generate_label(GenerateLabel(provider="bluedart", order_id=order.id))

        assert result.error == "pincode not serviceable"
        assert result.tracking_number == f"BD-ERR-{order.id}"
        assert _reload(order.id).tracking_number is None

    def test_persist_failure_still_returns_label(self, make_order, monkeypatch):
        order = make_order()

        def boom(self, *args):
            raise RuntimeError("disk full")

        monkeypatch.setattr(Order, "record_label", boom)

        result = ShippingHandler().generate_label(GenerateLabel(provider="shiprocket", order_id=order.id))

        assert isinstance(result, LabelResult)
        assert result.ok
        assert _reload(order.id).tracking_number is None

    def test_order_reference_required(self):
        with pytest.raises(ValidationError) as exc:
            ShippingHandler().generate_label(GenerateLabel(provider="shiprocket"))
        assert "order_id" in exc.value.messages

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            ShippingHandler().generate_label(GenerateLabel(provider="shiprocket", order_id="missing"))

    def test_unknown_carrier(self, make_order):
        order = make_order()
        with pytest.raises(ValidationError):
            ShippingHandler().generate_label(GenerateLabel(provider="pigeon", order_id=order.id))


class TestPickupAndTracking:
    def test_schedule_pickup(self):
        result = ShippingHandler().schedule_pickup(
            SchedulePickup(provider="shiprocket", shipment_id="555", pickup_date="2026-03-02")
        )
        assert result.pickup_id == "SR-PICKUP-MOCK-555"
        assert result.pickup_date == "2026-03-02"

    def test_track(self):
        result = ShippingHandler().track(TrackShipment(provider="delhivery", tracking_number="WB100"))
        assert result.tracking_url == "https://www.delhivery.com/track/WB100"

    def test_track_needs_number(self):
        with pytest.raises(ValidationError):
            ShippingHandler().track(TrackShipment(provider="delhivery", tracking_number=""))


class TestRecordShippingLabel:
    def test_records_label_fields(self, make_order):
        from fulfillment.shipping.labels import RecordShippingLabel

        order = make_order()

        current_domain.process(
            RecordShippingLabel(
                order_id=order.id, carrier="delhivery", tracking_number="WB200", label_url="https://x/label.pdf"
            ),
            asynchronous=False,
        )

        stored = _reload(order.id)
        assert (stored.carrier, stored.tracking_number, stored.label_url) == (
            "delhivery",
            "WB200",
            "https://x/label.pdf",
        )

    def test_empty_tracking_keeps_previous(self, make_order):
        from fulfillment.shipping.labels import RecordShippingLabel

        order = make_order()
        current_domain.process(
            RecordShippingLabel(order_id=order.id, carrier="delhivery", tracking_number="WB200"), asynchronous=False
        )
        current_domain.process(RecordShippingLabel(order_id=order.id, carrier="bluedart"), asynchronous=False)

        stored = _reload(order.id)
        assert stored.carrier == "bluedart"
        assert stored.tracking_number == "WB200"
