"""Order push: local Order → ERP ``sale.order``.

Safe to call any number of times for the same order. An order that already
carries ``external_erp_id`` is left alone, and before creating a remote
order the push looks for one whose ``client_order_ref`` is this order's
number, so a push that died between the remote create and the local write
links the existing record instead of duplicating it.

``push`` never raises: every outcome is reported as a ``PushResult``.
"""

from dataclasses import asdict, dataclass, field

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from catalogue.product.product import Product
from erp.client import get_erp_client
from erp.client.port import ErpClient
from ordering.order.order import Order
from shared.domain import storefront

logger = structlog.get_logger(__name__)


class PushStatus:
    PUSHED = "pushed"
    LINKED = "linked"
    ALREADY_LINKED = "already_linked"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class PushResult:
    order_id: str
    status: str
    external_id: int | None = None
    skipped_lines: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _customer(order: Order) -> dict:
    address = order.billing_address or order.shipping_address
    return {
        "name": address.full_name,
        "email": order.email,
        "phone": address.phone or False,
        "street": address.address1,
        "street2": address.address2 or False,
        "city": address.city,
        "zip": address.zip_code,
    }


class OrderPush:
    def __init__(self, client: ErpClient | None = None):
        self._client = client

    @property
    def client(self) -> ErpClient:
        return self._client or get_erp_client()

    def push(self, order_id: str) -> PushResult:
        try:
            return self._push(order_id)
        except Exception as exc:
            logger.error("ERP order push failed", order_id=order_id, error=str(exc))
            return PushResult(order_id=order_id, status=PushStatus.FAILED, error=str(exc))

    def push_unlinked(self, limit: int = 20) -> list[PushResult]:
        """Retry every order that has no ERP link yet. Used by the worker."""
        orders = current_domain.repository_for(Order).unlinked(limit)
        return [self.push(order.id) for order in orders]

    def _push(self, order_ref: str) -> PushResult:
        repo = current_domain.repository_for(Order)
        order = repo.get_by_ref(order_ref)
        if order.external_erp_id is not None:
            logger.debug("Order already linked to ERP", order_id=order.id, external_id=order.external_erp_id)
            return PushResult(order_id=order.id, status=PushStatus.ALREADY_LINKED, external_id=order.external_erp_id)

        client = self.client
        client.authenticate()

        existing = client.search_read(
            "sale.order",
            [["client_order_ref", "=", order.order_number]],
            fields=["id"],
            limit=1,
        )
        if existing:
            external_id = existing[0]["id"]
            self._link(repo, order, external_id)
            logger.info("Linked existing ERP sales order", order_id=order.id, external_id=external_id)
            return PushResult(order_id=order.id, status=PushStatus.LINKED, external_id=external_id)

        order_lines, skipped = self._resolve_lines(client, order)
        if not order_lines:
            logger.warning("No ERP-mapped lines; order not pushed", order_id=order.id, skipped_lines=skipped)
            return PushResult(order_id=order.id, status=PushStatus.SKIPPED, skipped_lines=skipped)

        partner_id = self._resolve_partner(client, order)
        external_id = client.create(
            "sale.order",
            {
                "partner_id": partner_id,
                "date_order": order.created_at.strftime("%Y-%m-%d"),
                "client_order_ref": order.order_number,
                "order_line": order_lines,
                "state": "sale",
            },
        )
        self._link(repo, order, external_id)
        logger.info(
            "Order pushed to ERP",
            order_id=order.id,
            external_id=external_id,
            lines=len(order_lines),
            skipped_lines=skipped,
        )
        return PushResult(order_id=order.id, status=PushStatus.PUSHED, external_id=external_id, skipped_lines=skipped)

    @staticmethod
    def _template_ids(order: Order) -> dict[str, int | None]:
        products = current_domain.repository_for(Product).find_many(item.product_id for item in order.items)
        return {product_id: product.external_erp_id for product_id, product in products.items()}

    def _resolve_lines(self, client: ErpClient, order: Order) -> tuple[list, list[str]]:
        template_by_product = self._template_ids(order)
        template_ids = sorted({tid for tid in template_by_product.values() if tid is not None})
        variant_by_template: dict[int, int] = {}
        if template_ids:
            variants = client.search_read(
                "product.product",
                [["product_tmpl_id", "in", template_ids]],
                fields=["id", "product_tmpl_id"],
            )
            for variant in variants:
                template = variant["product_tmpl_id"]
                template_id = template[0] if isinstance(template, list | tuple) else template
                variant_by_template.setdefault(template_id, variant["id"])

        order_lines = []
        skipped = []
        for item in order.sorted_items:
            template_id = template_by_product.get(item.product_id)
            variant_id = variant_by_template.get(template_id)
            if variant_id is None:
                reason = "no ERP mapping" if template_id is None else "ERP variant not found"
                logger.warning(
                    "Skipping order line for ERP push",
                    order_id=order.id,
                    product_name=item.product_name,
                    reason=reason,
                )
                skipped.append(item.product_name)
                continue
            values = {"product_id": variant_id, "product_uom_qty": item.quantity, "price_unit": item.unit_price}
            order_lines.append([0, 0, values])
        return order_lines, skipped

    @staticmethod
    def _resolve_partner(client: ErpClient, order: Order) -> int:
        partners = client.search_read("res.partner", [["email", "=", order.email]], fields=["id"], limit=1)
        if partners:
            return partners[0]["id"]
        partner_id = client.create("res.partner", _customer(order))
        logger.debug("Created ERP partner", order_id=order.id, partner_id=partner_id)
        return partner_id

    @staticmethod
    def _link(repo, order: Order, external_id: int) -> None:
        if order.link_external_erp_id(external_id):
            repo.add(order)


@storefront.command(part_of="Order")
class PushOrderToErp:
    """Operator-triggered push of one order to the ERP."""

    order_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class PushOrderToErpHandler:
    @handle(PushOrderToErp)
    def push_order(self, command: PushOrderToErp) -> dict:
        return OrderPush().push(command.order_id).to_dict()
