"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- RazorpayGateway for production (PAYMENT_GATEWAY=razorpay)
"""

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway
from shared.config import get_settings

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.payment_gateway == "razorpay":
            from payments.gateway.razorpay_adapter import RazorpayGateway

            _current_gateway = RazorpayGateway(
                key_id=settings.razorpay_key_id,
                key_secret=settings.razorpay_key_secret,
                webhook_secret=settings.razorpay_webhook_secret,
                base_url=settings.razorpay_api_base,
                timeout=settings.http_timeout_seconds,
            )
        elif settings.payment_gateway == "fake":
            _current_gateway = FakeGateway(
                secret=settings.razorpay_key_secret,
                webhook_secret=settings.razorpay_webhook_secret,
            )
        else:
            raise ValueError(f"Unknown payment gateway: {settings.payment_gateway}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
