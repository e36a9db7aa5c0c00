"""Cart item management: commands and handler.

Every command addresses the cart by ``user_id``; the cart is created on
first use. Stock is checked against the catalogue at the time of the call.
"""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class AddToCart:
    """Add a product to the user's cart, or grow the matching line."""

    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(default=1)
    selected_variant = String(max_length=255)


@storefront.command(part_of="Cart")
class UpdateCartItem:
    """Set the quantity of a cart line. Zero or less removes it."""

    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of="Cart")
class RemoveFromCart:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)


@storefront.command_handler(part_of=Cart)
class CartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = current_domain.repository_for(Product).get(command.product_id)

        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        cart.add_item(
            product_id=str(product.id),
            quantity=command.quantity,
            unit_price=product.price,
            available_stock=product.stock,
            selected_variant=command.selected_variant,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)

        if command.quantity <= 0:
            cart.remove_item(command.item_id)
        else:
            item = cart.get_item(command.item_id)
            product = current_domain.repository_for(Product).get(item.product_id)
            cart.update_item_quantity(
                command.item_id,
                command.quantity,
                available_stock=product.stock,
            )

        repo.add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        cart.remove_item(command.item_id)
        repo.add(cart)
        return str(cart.id)
