import json
import os
import tempfile
from pathlib import Path

import pytest

_TMP_DIR = Path(tempfile.mkdtemp(prefix="storefront-tests-"))

TEST_SECRET = "test-secret"
TEST_WEBHOOK_SECRET = "test-webhook-secret"

SHIPPING_ADDRESS = {
    "first_name": "Asha",
    "last_name": "Rao",
    "address1": "12 MG Road",
    "address2": "Flat 4B",
    "city": "Bengaluru",
    "state": "Karnataka",
    "zip_code": "560001",
    "country": "India",
    "phone": "9876543210",
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Point every adapter at local fakes, then activate the storefront domain.

    The activated domain can then be referred to elsewhere as `current_domain`.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["LOG_DIR"] = str(_TMP_DIR / "logs")
    os.environ["RAZORPAY_KEY_SECRET"] = TEST_SECRET
    os.environ["RAZORPAY_WEBHOOK_SECRET"] = TEST_WEBHOOK_SECRET
    for name in (
        "APP_ENV",
        "PAYMENT_GATEWAY",
        "ERP_ADAPTER",
        "EMAIL_ADAPTER",
        "SHIPROCKET_EMAIL",
        "SHIPROCKET_PASSWORD",
        "DELHIVERY_TOKEN",
        "SHIPPING_FLAT_RATE",
        "TAX_RATE",
        "PUBLIC_BASE_URL",
    ):
        os.environ.pop(name, None)

    from shared.config import reset_settings
    from shared.domain import init_domain

    reset_settings()
    storefront = init_domain()
    storefront.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from shared.db import drop_db, setup_db
    from shared.domain import storefront

    setup_db(storefront)

    yield

    drop_db(storefront)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    from erp.client import reset_erp_client
    from fulfillment.carrier import reset_carriers
    from notifications.channel import reset_email_adapter
    from ordering.pricing.rates import reset_rate_provider
    from payments.gateway import reset_gateway
    from shared.config import reset_settings

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_erp_client()
    reset_carriers()
    reset_email_adapter()
    reset_rate_provider()
    reset_settings()


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from payments.gateway import set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    fake = FakeGateway(secret=TEST_SECRET, webhook_secret=TEST_WEBHOOK_SECRET)
    set_gateway(fake)
    return fake


@pytest.fixture()
def erp():
    from erp.client import set_erp_client
    from erp.client.fake_adapter import FakeErpClient

    fake = FakeErpClient()
    set_erp_client(fake)
    return fake


@pytest.fixture()
def mailbox():
    from notifications.channel import set_email_adapter
    from notifications.channel.fake_email import FakeEmailAdapter

    fake = FakeEmailAdapter()
    set_email_adapter(fake)
    return fake


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    from protean import current_domain

    from catalogue.product.product import Product

    def _make(name="Cotton Kurta", base_price=1000, inventory=10, **overrides):
        product = Product.create(name=name, base_price=base_price, inventory=inventory, **overrides)
        current_domain.repository_for(Product).add(product)
        return current_domain.repository_for(Product).get(product.id)

    return _make


@pytest.fixture()
def make_coupon():
    from protean import current_domain

    from ordering.coupon.coupon import Coupon

    def _make(code="SAVE10", type="percentage", value=10, **overrides):
        coupon = Coupon.create(code=code, type=type, value=value, **overrides)
        current_domain.repository_for(Coupon).add(coupon)
        return current_domain.repository_for(Coupon).get(coupon.id)

    return _make


@pytest.fixture()
def make_order(make_product):
    from protean import current_domain

    from ordering.checkout.placement import PlaceOrder
    from ordering.order.order import Order

    def _make(product=None, quantity=1, variants=None, coupon_code=None, email="asha@example.com", **overrides):
        product = product or make_product()
        command = PlaceOrder(
            email=email,
            items=json.dumps([{"product_id": product.id, "quantity": quantity, "variants": variants or {}}]),
            shipping_address=json.dumps(SHIPPING_ADDRESS),
            coupon_code=coupon_code,
            **overrides,
        )
        order_id = current_domain.process(command, asynchronous=False)
        return current_domain.repository_for(Order).get(order_id)

    return _make


@pytest.fixture()
def load_order():
    from protean import current_domain

    from ordering.order.order import Order

    def _load(order_id):
        return current_domain.repository_for(Order).get(order_id)

    return _load


@pytest.fixture()
def open_gateway_order(gateway):
    """Open the gateway order for an order, the way checkout does before payment."""
    from protean import current_domain

    from ordering.order.order import Order
    from payments.payment.gateway_order import CreateGatewayOrder

    def _open(order):
        current_domain.process(CreateGatewayOrder(order_id=order.id), asynchronous=False)
        return current_domain.repository_for(Order).get(order.id)

    return _open


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)


@pytest.fixture()
def linked_product(make_product, erp):
    """A product mapped to an ERP template (and, by default, its variant)."""
    from protean import current_domain

    from catalogue.product.product import Product

    def _make(name="Cotton Kurta", template_id=None, with_variant=True, **overrides):
        product = make_product(name=name, **overrides)
        template_id = template_id or erp.seed("product.template", {"name": name})
        if with_variant:
            erp.seed("product.product", {"product_tmpl_id": [template_id, name]})
        product.link_erp_template(template_id)
        current_domain.repository_for(Product).add(product)
        return current_domain.repository_for(Product).get(product.id)

    return _make
