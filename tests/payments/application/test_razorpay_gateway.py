"""Application tests for the Razorpay adapter against a stubbed HTTP API."""

import json

import httpx
import pytest
import respx
from payments.gateway.port import GatewayError
from payments.gateway.razorpay_adapter import RazorpayGateway

BASE_URL = "https://api.razorpay.test/v1"


def _gateway():
    return RazorpayGateway(key_id="rzp_test_key", key_secret="test-secret", base_url=BASE_URL)


class TestFetchPayment:
    @respx.mock
    def test_captured_payment_converted_from_paise(self):
        route = respx.get(f"{BASE_URL}/payments/pay_001").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": "pay_001",
                    "status": "captured",
                    "amount": 205000,
                    "currency": "INR",
                    "method": "upi",
                    "order_id": "order_rzp_001",
                    "email": "asha@example.com",
                },
            )
        )

        payment = _gateway().fetch_payment("pay_001")

        assert route.called
        assert route.calls.last.request.headers["Authorization"].startswith("Basic ")
        assert payment.is_captured
        assert payment.amount == 2050.0
        assert payment.method == "upi"
        assert payment.order_ref == "order_rzp_001"

    @respx.mock
    def test_unknown_payment_returns_none(self):
        respx.get(f"{BASE_URL}/payments/pay_missing").mock(return_value=httpx.Response(400, json={"error": {}}))
        assert _gateway().fetch_payment("pay_missing") is None

    @respx.mock
    def test_server_error_raises(self):
        respx.get(f"{BASE_URL}/payments/pay_001").mock(return_value=httpx.Response(502))
        with pytest.raises(GatewayError):
            _gateway().fetch_payment("pay_001")

    @respx.mock
    def test_network_error_raises(self):
        respx.get(f"{BASE_URL}/payments/pay_001").mock(side_effect=httpx.ConnectTimeout("timed out"))
        with pytest.raises(GatewayError):
            _gateway().fetch_payment("pay_001")


class TestCreateOrder:
    @respx.mock
    def test_order_opened_in_paise(self):
        route = respx.post(f"{BASE_URL}/orders").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": "order_rzp_001",
                    "amount": 205050,
                    "currency": "INR",
                    "status": "created",
                    "receipt": "ORD-1-0001",
                    "created_at": 1718000000,
                },
            )
        )

        order = _gateway().create_order(amount=2050.5, currency="INR", receipt="ORD-1-0001", notes={"order_id": "o1"})

        sent = json.loads(route.calls.last.request.content)
        assert sent["amount"] == 205050
        assert sent["receipt"] == "ORD-1-0001"
        assert sent["notes"] == {"order_id": "o1"}
        assert order.order_ref == "order_rzp_001"
        assert order.amount == 2050.5
        assert order.status == "created"

    @respx.mock
    def test_refused_order_raises(self):
        respx.post(f"{BASE_URL}/orders").mock(return_value=httpx.Response(400, json={"error": {"code": "BAD"}}))
        with pytest.raises(GatewayError):
            _gateway().create_order(amount=10, currency="INR", receipt="ORD-1-0001")

    @respx.mock
    def test_unreadable_order_raises(self):
        respx.post(f"{BASE_URL}/orders").mock(return_value=httpx.Response(200, json=["unexpected"]))
        with pytest.raises(GatewayError):
            _gateway().create_order(amount=10, currency="INR", receipt="ORD-1-0001")
