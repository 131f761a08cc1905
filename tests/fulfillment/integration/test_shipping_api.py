"""Integration tests for the shipping endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from fulfillment.api import shipping_router
from shared.http import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(shipping_router)
    return TestClient(app)


class TestLabelEndpoint:
    def test_generate_label(self, client, make_order):
        order = make_order()

        response = client.post("/shipping/label", json={"provider": "shiprocket", "order_id": order.id})

        assert response.status_code == 200
        label = response.json()["label"]
        assert label["carrier"] == "shiprocket"
        assert label["tracking_number"] == f"SR-MOCK-{order.id}"
        assert label["label_url"].endswith(f"/uploads/mock-label-shiprocket-{order.id}.pdf")
        assert label["error"] is None

    def test_with_dimensions(self, client, make_order):
        order = make_order()
        response = client.post(
            "/shipping/label",
            json={
                "provider": "delhivery",
                "order_number": order.order_number,
                "weight_kg": 2,
                "dimensions_cm": {"length": 40, "breadth": 30, "height": 10},
            },
        )
        assert response.status_code == 200
        assert response.json()["label"]["awb"] == f"DLV-MOCK-{order.id}"

    def test_unsupported_provider_is_400(self, client, make_order):
        order = make_order()
        response = client.post("/shipping/label", json={"provider": "pigeon", "order_id": order.id})
        assert response.status_code == 400
        assert "provider" in response.json()["messages"]

    def test_missing_order_reference_is_400(self, client):
        response = client.post("/shipping/label", json={"provider": "shiprocket"})
        assert response.status_code == 400

    def test_unknown_order_is_404(self, client):
        response = client.post("/shipping/label", json={"provider": "shiprocket", "order_id": "missing"})
        assert response.status_code == 404

    def test_negative_weight_is_400(self, client):
        response = client.post("/shipping/label", json={"provider": "shiprocket", "order_id": "x", "weight_kg": -1})
        assert response.status_code == 400


class TestPickupEndpoint:
    def test_schedule_pickup(self, client):
        response = client.post("/shipping/pickup", json={"provider": "bluedart", "awb": "BD-MOCK-1"})

        assert response.status_code == 200
        pickup = response.json()["pickup"]
        assert pickup["pickup_scheduled"] is True
        assert pickup["pickup_id"] == "BD-PICKUP-MOCK-BD-MOCK-1"
        assert pickup["message"] == "Mock pickup scheduled with bluedart"


class TestTrackEndpoint:
    def test_track(self, client):
        response = client.get("/shipping/track", params={"provider": "shiprocket", "tracking_number": "AWB1"})

        assert response.status_code == 200
        assert response.json() == {
            "tracking_url": "https://shiprocket.co/tracking/AWB1",
            "details": {"status": "unknown"},
        }

    def test_track_requires_tracking_number(self, client):
        response = client.get("/shipping/track", params={"provider": "shiprocket"})
        assert response.status_code == 400
