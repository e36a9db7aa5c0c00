"""Product aggregate: the slice of the catalogue that orders depend on.

Only name, price, images and the stock counters are modelled here. Stock is
mutated exclusively through ``withdraw`` and ``replenish``, which the
inventory adjuster calls while holding the product's lock.
"""

import json
from datetime import UTC, datetime

from protean.fields import DateTime, Float, Integer, String, Text

from storefront.catalogue.events import ProductCreated, StockReplenished, StockWithdrawn
from storefront.domain import storefront
from storefront.shared.errors import InsufficientStock

PLACEHOLDER_IMAGE = "/placeholder-product.jpg"


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    sold_count = Integer(default=0)
    images = Text()  # JSON array of image URLs
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name, price, stock=0, images=None, product_id=None):
        now = datetime.now(UTC)
        attrs = {
            "name": name,
            "price": price,
            "stock": stock,
            "sold_count": 0,
            "images": json.dumps(images or []),
            "created_at": now,
            "updated_at": now,
        }
        if product_id:
            attrs["id"] = product_id

        product = cls(**attrs)
        product.raise_(
            ProductCreated(
                product_id=str(product.id),
                name=name,
                price=price,
                stock=stock,
                created_at=now,
            )
        )
        return product

    @property
    def image_urls(self):
        return json.loads(self.images) if self.images else []

    @property
    def primary_image(self):
        urls = self.image_urls
        return urls[0] if urls else None

    def has_stock(self, quantity):
        return self.stock >= quantity

    def ensure_stock(self, quantity):
        """Raise InsufficientStock unless ``quantity`` units are on hand."""
        if not self.has_stock(quantity):
            raise InsufficientStock(
                {
                    "stock": [
                        f"Insufficient stock for {self.name}. Available: {self.stock}, Requested: {quantity}"
                    ]
                }
            )

    def withdraw(self, quantity, reference=None):
        """Take ``quantity`` units off the shelf and count them as sold."""
        self.ensure_stock(quantity)

        self.stock -= quantity
        self.sold_count = (self.sold_count or 0) + quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockWithdrawn(
                product_id=str(self.id),
                quantity=quantity,
                remaining_stock=self.stock,
                reference=reference,
            )
        )

    def replenish(self, quantity, reference=None):
        """Exact inverse of ``withdraw``. No clamping is applied to ``sold_count``."""
        self.stock += quantity
        self.sold_count = (self.sold_count or 0) - quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockReplenished(
                product_id=str(self.id),
                quantity=quantity,
                remaining_stock=self.stock,
                reference=reference,
            )
        )
