"""Background worker for the storefront.

Runs the Protean Engine for the ``storefront`` domain (outbox processor and
event handler subscriptions: invoices, ERP order push, confirmation emails)
next to a maintenance loop that periodically:
- pulls the ERP catalogue (when ERP_SYNC_INTERVAL_SECONDS is set),
- retries ERP pushes for orders that are still unlinked,
- retries failed confirmation emails.

A failing step is logged and the loop keeps polling.

Usage:
    storefront-worker                     # Engine + maintenance loop
    storefront-worker --once              # run one maintenance cycle and exit
    storefront-worker --no-erp-sync       # skip the scheduled catalogue pull
"""

import argparse
import threading

from protean.server.engine import Engine

from erp.sync.catalog_sync import CatalogSync
from erp.sync.order_push import OrderPush
from notifications.notification.retry import retry_failed_notifications
from shared.config import get_settings
from shared.domain import init_domain, storefront
from shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAINTENANCE_SECONDS = 60.0


def run_maintenance_cycle(erp_sync: bool) -> None:
    """One pass over the periodic jobs. Each job is isolated from the others' failures."""
    settings = get_settings()
    with storefront.domain_context():
        if erp_sync:
            try:
                result = CatalogSync().pull()
                logger.info("Scheduled ERP pull finished", synced=result.synced, errors=result.errors)
            except Exception:
                logger.exception("Scheduled ERP pull failed")

        try:
            results = OrderPush().push_unlinked(settings.erp_push_batch_size)
            if results:
                logger.info(
                    "ERP push retry finished",
                    attempted=len(results),
                    failed=sum(1 for result in results if result.error),
                )
        except Exception:
            logger.exception("ERP push retry failed")

        try:
            sent = retry_failed_notifications()
            if sent:
                logger.info("Failed notifications resent", sent=sent)
        except Exception:
            logger.exception("Notification retry failed")


def run_maintenance_loop(interval_seconds: float, erp_sync: bool, stop: threading.Event) -> None:
    """Run maintenance cycles until ``stop`` is set. An unexpected error never ends the loop."""
    while not stop.is_set():
        try:
            run_maintenance_cycle(erp_sync)
        except Exception:
            logger.exception("Maintenance cycle crashed")
        stop.wait(interval_seconds)


def main():
    parser = argparse.ArgumentParser(description="Storefront Engine and maintenance worker")
    parser.add_argument("--once", action="store_true", help="Run one maintenance cycle and exit")
    parser.add_argument("--no-erp-sync", action="store_true", help="Disable the scheduled ERP catalogue pull")
    args = parser.parse_args()

    init_domain()
    settings = get_settings()
    erp_sync = not args.no_erp_sync and settings.erp_sync_interval_seconds > 0

    if args.once:
        run_maintenance_cycle(erp_sync)
        return

    interval = settings.erp_sync_interval_seconds or DEFAULT_MAINTENANCE_SECONDS
    stop = threading.Event()
    maintenance = threading.Thread(
        target=run_maintenance_loop,
        args=(interval, erp_sync, stop),
        name="storefront-maintenance",
        daemon=True,
    )
    maintenance.start()
    logger.info("Storefront worker started", maintenance_interval_seconds=interval, erp_sync=erp_sync)

    try:
        Engine(storefront).run()
    except KeyboardInterrupt:
        logger.info("Storefront worker stopped")
    finally:
        stop.set()


if __name__ == "__main__":
    main()
