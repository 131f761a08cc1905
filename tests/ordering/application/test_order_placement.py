"""Application tests for order placement: reservation, outbox and concurrency."""

import json

import pytest
from catalogue.product.product import Product
from ordering.checkout.placement import OrderLedger, PlaceOrder
from ordering.coupon.coupon import Coupon
from ordering.order.order import Order
from protean import UnitOfWork, current_domain
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.utils.outbox import OutboxStatus
from shared.exceptions import CouponMinimumNotMet, OutOfStock


def _reload(model, pk):
    return current_domain.repository_for(model).get(pk)


def _order_count():
    return current_domain.repository_for(Order).count()


def _outbox():
    return current_domain._get_outbox_repo("default").find_unprocessed()


def _command(product, shipping_address, quantity=1, coupon_code=None, variants=None, **overrides):
    return PlaceOrder(
        email="asha@example.com",
        items=json.dumps([{"product_id": product.id, "quantity": quantity, "variants": variants or {}}]),
        shipping_address=json.dumps(shipping_address),
        coupon_code=coupon_code,
        **overrides,
    )


def _place(command):
    order_id = current_domain.process(command, asynchronous=False)
    return _reload(Order, order_id)


class TestPlaceOrder:
    def test_order_persisted_with_quote_totals(self, make_product, make_coupon, shipping_address):
        product = make_product(base_price=1000, variants=[{"name": "Color", "value": "Red", "price_adjustment": 100}])
        make_coupon(code="SAVE10", type="percentage", value=10, min_amount=500, max_discount=150)

        order = _place(_command(product, shipping_address, quantity=2, coupon_code="SAVE10", variants={"Color": "Red"}))

        assert order.total == 2050.0
        assert order.subtotal == 2200.0
        assert order.discount == 150.0
        assert order.coupon_code == "SAVE10"
        assert order.financial_status == "pending"
        assert order.order_number.startswith("ORD-")
        assert order.items[0].unit_price == 1100.0
        assert order.items[0].variants == {"Color": "Red"}
        assert order.shipping_address.city == "Bengaluru"

    def test_client_prices_in_items_are_ignored(self, make_product, shipping_address):
        product = make_product(base_price=1000)
        command = PlaceOrder(
            email="asha@example.com",
            items=json.dumps([{"product_id": product.id, "quantity": 1, "price": 1}]),
            shipping_address=json.dumps(shipping_address),
        )

        assert _place(command).total == 1000.0

    def test_inventory_decremented(self, make_product, shipping_address):
        product = make_product(inventory=5)
        _place(_command(product, shipping_address, quantity=2))

        stored = _reload(Product, product.id)
        assert stored.inventory == 3
        assert stored.in_stock is True

    def test_last_unit_marks_out_of_stock(self, make_product, shipping_address):
        product = make_product(inventory=2)
        _place(_command(product, shipping_address, quantity=2))

        stored = _reload(Product, product.id)
        assert stored.inventory == 0
        assert stored.in_stock is False

    def test_coupon_usage_recorded(self, make_product, make_coupon, shipping_address):
        product = make_product()
        coupon = make_coupon(code="FLAT50", type="fixed", value=50, usage_limit=3)
        _place(_command(product, shipping_address, coupon_code="FLAT50"))

        assert _reload(Coupon, coupon.id).usage_count == 1

    def test_order_placed_event_written_to_outbox(self, make_product, shipping_address):
        order = _place(_command(make_product(), shipping_address))

        records = [record for record in _outbox() if record.type == "Storefront.OrderPlaced.v1"]
        assert len(records) == 1
        assert records[0].data["order_id"] == order.id
        assert records[0].data["order_number"] == order.order_number
        assert records[0].status == OutboxStatus.PENDING.value
        assert records[0].stream_name.startswith("storefront::order-")

    def test_billing_address_snapshot_separate(self, make_product, shipping_address):
        command = _command(
            make_product(), shipping_address, billing_address=json.dumps({**shipping_address, "city": "Mysuru"})
        )
        order = _place(command)

        assert order.billing_address.city == "Mysuru"
        assert order.shipping_address.city == "Bengaluru"

    def test_billing_defaults_to_shipping(self, make_product, shipping_address):
        order = _place(_command(make_product(), shipping_address))
        assert order.billing_address == order.shipping_address

    def test_order_numbers_are_sequential(self, make_product, shipping_address):
        product = make_product()
        first = _place(_command(product, shipping_address))
        second = _place(_command(product, shipping_address))
        assert first.order_number.endswith("-0001")
        assert second.order_number.endswith("-0002")

    def test_incomplete_address_names_the_field(self, make_product, shipping_address):
        address = {key: value for key, value in shipping_address.items() if key != "city"}

        with pytest.raises(ValidationError) as exc:
            _place(_command(make_product(), address))

        assert "shipping_address.city" in exc.value.messages
        assert _order_count() == 0


class TestRejectedCheckout:
    def test_minimum_not_met_creates_nothing(self, make_product, make_coupon, shipping_address):
        product = make_product(inventory=10, variants=[{"name": "Color", "value": "Red", "price_adjustment": 100}])
        coupon = make_coupon(code="BIGSPEND", type="percentage", value=10, min_amount=5000)

        with pytest.raises(CouponMinimumNotMet):
            _place(_command(product, shipping_address, quantity=2, coupon_code="BIGSPEND", variants={"Color": "Red"}))

        assert _order_count() == 0
        assert _outbox() == []
        assert _reload(Product, product.id).inventory == 10
        assert _reload(Coupon, coupon.id).usage_count == 0

    def test_insufficient_stock_creates_nothing(self, make_product, shipping_address):
        product = make_product(inventory=1)
        with pytest.raises(OutOfStock):
            _place(_command(product, shipping_address, quantity=2))

        assert _order_count() == 0
        assert _reload(Product, product.id).inventory == 1


class TestConcurrentCheckouts:
    """Two checkouts priced against the same aggregate versions; only the first save wins."""

    def test_last_coupon_use_goes_to_exactly_one_checkout(self, make_product, make_coupon, shipping_address):
        product = make_product(inventory=10)
        coupon = make_coupon(code="LASTONE", type="fixed", value=100, usage_limit=1)
        command = _command(product, shipping_address, coupon_code="LASTONE")

        first_order, first_products, first_coupon = OrderLedger().place(command)
        second_order, second_products, second_coupon = OrderLedger().place(command)

        with UnitOfWork():
            current_domain.repository_for(Coupon).add(first_coupon)
            for fresh in first_products:
                current_domain.repository_for(Product).add(fresh)
            current_domain.repository_for(Order).add(first_order)

        with pytest.raises(ExpectedVersionError):
            with UnitOfWork():
                current_domain.repository_for(Coupon).add(second_coupon)
                current_domain.repository_for(Order).add(second_order)

        assert _order_count() == 1
        assert _reload(Coupon, coupon.id).usage_count == 1
        assert _reload(Product, product.id).inventory == 9

    def test_last_unit_sold_once(self, make_product, shipping_address):
        product = make_product(inventory=1)
        command = _command(product, shipping_address)

        first_order, first_products, _ = OrderLedger().place(command)
        second_order, second_products, _ = OrderLedger().place(command)

        with UnitOfWork():
            for fresh in first_products:
                current_domain.repository_for(Product).add(fresh)
            current_domain.repository_for(Order).add(first_order)

        with pytest.raises(ExpectedVersionError):
            with UnitOfWork():
                for stale in second_products:
                    current_domain.repository_for(Product).add(stale)
                current_domain.repository_for(Order).add(second_order)

        assert _order_count() == 1
        stored = _reload(Product, product.id)
        assert stored.inventory == 0
        assert stored.in_stock is False
