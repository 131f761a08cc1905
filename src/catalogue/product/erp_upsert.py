"""Catalogue upsert from an ERP product template: command and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Integer, String, Text
from protean.utils.globals import current_domain

from catalogue.product.product import Product
from shared.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class UpsertErpProduct:
    """Create or refresh the local product mirroring one ERP template."""

    template_id = Integer(required=True)
    name = String(required=True, max_length=255)
    slug = String(required=True, max_length=255)
    price = Float(default=0.0)
    qty_available = Float(default=0.0)
    category = String(max_length=120)
    description = Text()
    weight = Float()


@storefront.command_handler(part_of=Product)
class UpsertErpProductHandler:
    @handle(UpsertErpProduct)
    def upsert(self, command: UpsertErpProduct):
        """Match by template id first, slug second. The first slug match records the link."""
        repo = current_domain.repository_for(Product)
        product = repo.find_by_erp_template(command.template_id)
        if product is None:
            product = repo.find_by_slug(command.slug)
            if product is not None and product.external_erp_id not in (None, command.template_id):
                raise ValidationError(
                    {"slug": [f"Slug {command.slug} is linked to ERP template {product.external_erp_id}"]}
                )

        created = product is None
        if created:
            product = Product.create(name=command.name, base_price=0, slug=command.slug)

        product.apply_erp_snapshot(
            name=command.name,
            slug=command.slug,
            price=command.price,
            qty_available=command.qty_available,
            category=command.category,
            description=command.description,
            weight=command.weight,
        )
        product.link_erp_template(command.template_id)
        repo.add(product)

        logger.debug(
            "ERP template synced",
            template_id=command.template_id,
            product_id=product.id,
            slug=command.slug,
            created=created,
        )
        return str(product.id)
