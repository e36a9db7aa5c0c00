"""Product creation: command and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Product")
class CreateProduct:
    product_id = Identifier()  # Optional: supplied by seeding scripts
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    images = Text()  # JSON array of image URLs


@storefront.command_handler(part_of=Product)
class CreateProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        images = json.loads(command.images) if isinstance(command.images, str) else command.images

        product = Product.create(
            name=command.name,
            price=command.price,
            stock=command.stock or 0,
            images=images,
            product_id=command.product_id,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)
