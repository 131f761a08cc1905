"""Product aggregate root with its Variant entities.

Checkout decrements inventory on products it loaded. Aggregates carry a
version that protean checks on save, so when two checkouts race for the
same product the later save fails with ``ExpectedVersionError`` instead of
overselling.
"""

import math
import re
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text
from slugify import slugify

from shared.domain import storefront
from shared.money import to_money

_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def make_slug(value: str) -> str:
    return slugify(value or "")


@storefront.entity(part_of="Product")
class Variant:
    """A selectable option (size, colour...) that shifts the base price."""

    name: String(required=True, max_length=100)
    value: String(required=True, max_length=100)
    price_adjustment: Float(default=0.0)


@storefront.aggregate
class Product:
    name: String(required=True, max_length=255)
    slug: String(required=True, max_length=255, unique=True)
    description: Text()
    category: String(max_length=120, default="Uncategorized")
    base_price: Float(required=True, min_value=0.0)
    inventory: Integer(default=0, min_value=0)
    in_stock: Boolean(default=True)
    weight: Float()
    external_erp_id: Integer(unique=True)
    variants: HasMany(Variant)
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(
        cls,
        name: str,
        base_price,
        inventory: int = 0,
        slug: str | None = None,
        description: str | None = None,
        category: str | None = None,
        weight: float | None = None,
        variants: list[dict] | None = None,
    ):
        if not name:
            raise ValidationError({"name": ["Product name is required"]})
        slug = slug or make_slug(name)
        if not _SLUG_PATTERN.match(slug):
            raise ValidationError({"slug": ["Slug must contain only lowercase alphanumeric characters and hyphens"]})
        price = to_money(base_price)
        if price < 0:
            raise ValidationError({"base_price": ["Price cannot be negative"]})
        if inventory < 0:
            raise ValidationError({"inventory": ["Inventory cannot be negative"]})

        now = datetime.now(UTC)
        product = cls(
            name=name,
            slug=slug,
            description=description,
            category=category or "Uncategorized",
            base_price=price,
            inventory=inventory,
            in_stock=inventory > 0,
            weight=weight,
            created_at=now,
            updated_at=now,
        )
        for variant in variants or []:
            product.add_variant(variant["name"], variant["value"], variant.get("price_adjustment", 0))
        return product

    def add_variant(self, name: str, value, price_adjustment=0) -> Variant:
        variant = Variant(name=name, value=str(value), price_adjustment=to_money(price_adjustment))
        self.add_variants(variant)
        return variant

    def find_variant(self, name: str, value) -> Variant | None:
        for variant in self.variants:
            if variant.name == name and variant.value == str(value):
                return variant
        return None

    def is_available(self, quantity: int) -> bool:
        return bool(self.in_stock) and self.inventory >= quantity

    def decrement_inventory(self, quantity: int) -> None:
        """Reserve stock for a placed order. Never goes below zero."""
        self.inventory = max(0, self.inventory - quantity)
        self.in_stock = self.inventory > 0
        self.updated_at = datetime.now(UTC)

    def link_erp_template(self, template_id: int) -> None:
        if self.external_erp_id is not None and self.external_erp_id != template_id:
            raise ValidationError(
                {"external_erp_id": [f"Product already linked to ERP template {self.external_erp_id}"]}
            )
        self.external_erp_id = template_id

    def apply_erp_snapshot(
        self,
        name: str,
        slug: str,
        price,
        qty_available,
        category: str | None = None,
        description: str | None = None,
        weight: float | None = None,
    ) -> None:
        """Overwrite catalogue fields with the ERP's values."""
        qty = float(qty_available or 0)
        self.name = name
        self.slug = slug
        self.description = description or None
        self.base_price = to_money(price or 0)
        self.category = category or "Uncategorized"
        self.inventory = max(0, math.floor(qty))
        self.in_stock = qty > 0
        self.weight = weight or None
        self.updated_at = datetime.now(UTC)


@storefront.repository(part_of=Product)
class ProductRepository:
    def find_by_slug(self, slug: str) -> Product | None:
        return self._dao.query.filter(slug=slug).all().first

    def find_by_erp_template(self, template_id: int) -> Product | None:
        return self._dao.query.filter(external_erp_id=template_id).all().first

    def find_many(self, ids) -> dict[str, Product]:
        """Products keyed by id. Unknown ids are simply absent."""
        ids = sorted(set(ids))
        if not ids:
            return {}
        return {product.id: product for product in self._dao.query.filter(id__in=ids).all().items}
