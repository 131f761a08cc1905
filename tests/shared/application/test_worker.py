"""Application tests for the background worker's maintenance loop."""

import threading

import pytest
import server
from erp.sync.order_push import OrderPush, PushStatus
from notifications.notification.notification import Notification
from ordering.order.order import Order
from protean import current_domain


def _reload(order_id):
    return current_domain.repository_for(Order).get(order_id)


@pytest.fixture()
def offline_order(erp, linked_product, make_order):
    def _make():
        erp.configure(should_succeed=False)
        order = make_order(product=linked_product())
        erp.configure(should_succeed=True)
        return order

    return _make


class TestMaintenanceLoop:
    def test_crashing_cycle_does_not_stop_the_loop(self, monkeypatch):
        stop = threading.Event()
        calls = []

        def flaky_cycle(erp_sync):
            calls.append(erp_sync)
            if len(calls) == 1:
                raise RuntimeError("database went away")
            if len(calls) == 3:
                stop.set()

        monkeypatch.setattr(server, "run_maintenance_cycle", flaky_cycle)

        server.run_maintenance_loop(0, True, stop)

        assert calls == [True, True, True]

    def test_stops_when_asked(self, monkeypatch):
        stop = threading.Event()
        stop.set()
        calls = []
        monkeypatch.setattr(server, "run_maintenance_cycle", calls.append)

        server.run_maintenance_loop(0, False, stop)

        assert calls == []


class TestMaintenanceCycle:
    def test_failed_catalogue_pull_does_not_skip_push_retry(self, erp, offline_order, monkeypatch):
        order = offline_order()

        def broken_pull(self, limit=100):
            raise RuntimeError("ERP timeout")

        monkeypatch.setattr(server.CatalogSync, "pull", broken_pull)

        server.run_maintenance_cycle(erp_sync=True)

        assert _reload(order.id).external_erp_id is not None

    def test_catalogue_pulled_when_enabled(self, erp):
        from catalogue.product.product import Product

        template_id = erp.seed(
            "product.template", {"name": "Kurta", "default_code": "K-1", "list_price": 999, "sale_ok": True}
        )

        server.run_maintenance_cycle(erp_sync=True)

        assert current_domain.repository_for(Product).find_by_erp_template(template_id).slug == "k-1"

    def test_catalogue_pull_skipped_when_disabled(self, erp):
        server.run_maintenance_cycle(erp_sync=False)
        assert erp.calls_to("search_read", "product.template") == []

    def test_failed_confirmation_resent(self, mailbox, make_order):
        from datetime import UTC, datetime

        from notifications.notification.dispatch import NotificationDispatcher
        from ordering.order.events import PaymentConfirmed

        order = make_order()
        mailbox.configure(should_succeed=False)
        NotificationDispatcher().on_payment_confirmed(
            PaymentConfirmed(
                order_id=order.id,
                order_number=order.order_number,
                email=order.email,
                payment_id="pay_001",
                amount=order.total,
                confirmed_at=datetime(2026, 3, 1, tzinfo=UTC),
            )
        )
        mailbox.configure(should_succeed=True)

        server.run_maintenance_cycle(erp_sync=False)

        notification = current_domain.repository_for(Notification).find_for_order(order.id, "order_confirmation")
        assert notification.status == "sent"
        assert len(mailbox.sent_emails) == 1


class TestPushRetryDoesNotStall:
    def test_order_that_keeps_failing_does_not_block_later_orders(self, erp, offline_order, monkeypatch):
        stuck = offline_order()
        later = offline_order()
        original = OrderPush._push

        def push(self, order_ref):
            if order_ref == stuck.id:
                raise RuntimeError("remote rejected sales order")
            return original(self, order_ref)

        monkeypatch.setattr(OrderPush, "_push", push)

        results = {result.order_id: result.status for result in OrderPush().push_unlinked()}

        assert results == {stuck.id: PushStatus.FAILED, later.id: PushStatus.PUSHED}
        assert _reload(later.id).external_erp_id is not None
        assert _reload(stuck.id).external_erp_id is None

    def test_handler_failure_does_not_stop_other_consumers(self, erp, mailbox, linked_product, make_order):
        from payments.invoice.invoice import Invoice

        erp.failing_models.add("sale.order")

        order = make_order(product=linked_product())

        assert current_domain.repository_for(Invoice).find_by_order(order.id) is not None
        assert _reload(order.id).external_erp_id is None
