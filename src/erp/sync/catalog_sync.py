"""Catalogue pull: ERP product templates → local Product aggregates.

The ERP is the source of truth for name, price, stock and weight. Each
template is upserted by its own command, so one bad record never blocks
the rest of the run.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from catalogue.product.erp_upsert import UpsertErpProduct
from catalogue.product.product import make_slug
from erp.client import get_erp_client
from erp.client.port import ErpClient, ErpError
from shared.exceptions import ExternalServiceDegraded

logger = structlog.get_logger(__name__)

TEMPLATE_FIELDS = [
    "id",
    "name",
    "default_code",
    "list_price",
    "description_sale",
    "qty_available",
    "weight",
    "categ_id",
]


@dataclass(frozen=True)
class SyncResult:
    synced: int
    errors: int


def _category_name(categ_id) -> str | None:
    # many2one values arrive as [id, "Display Name"]
    if isinstance(categ_id, list | tuple) and len(categ_id) > 1:
        return categ_id[1]
    return None


def _text(value) -> str | None:
    # Odoo returns False for empty fields
    return value or None


def upsert_command(template: dict) -> UpsertErpProduct:
    template_id = template["id"]
    slug = make_slug(_text(template.get("default_code")) or template.get("name") or "")
    if not slug:
        raise ValidationError({"slug": [f"ERP template {template_id} has neither a code nor a name"]})
    return UpsertErpProduct(
        template_id=template_id,
        name=template.get("name") or slug,
        slug=slug,
        price=template.get("list_price") or 0.0,
        qty_available=template.get("qty_available") or 0.0,
        category=_category_name(template.get("categ_id")),
        description=_text(template.get("description_sale")),
        weight=_text(template.get("weight")),
    )


class CatalogSync:
    def __init__(self, client: ErpClient | None = None):
        self._client = client

    @property
    def client(self) -> ErpClient:
        return self._client or get_erp_client()

    def pull(self, limit: int = 100) -> SyncResult:
        try:
            self.client.authenticate()
            templates = self.client.search_read(
                "product.template",
                [["sale_ok", "=", True]],
                fields=TEMPLATE_FIELDS,
                limit=limit,
            )
        except ErpError as exc:
            logger.error("ERP catalogue fetch failed", error=str(exc))
            raise ExternalServiceDegraded({"erp": [f"ERP unavailable: {exc}"]}) from exc

        synced = 0
        errors = 0
        for template in templates:
            try:
                current_domain.process(upsert_command(template), asynchronous=False)
                synced += 1
            except Exception as exc:
                errors += 1
                logger.warning("ERP template sync failed", template_id=template.get("id"), error=str(exc))

        logger.info("ERP catalogue pull finished", fetched=len(templates), synced=synced, errors=errors)
        return SyncResult(synced=synced, errors=errors)
