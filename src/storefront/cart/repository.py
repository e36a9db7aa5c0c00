"""Repository for the Cart aggregate."""

from storefront.cart.cart import Cart
from storefront.domain import storefront


@storefront.repository(part_of=Cart)
class CartRepository:
    def find_by_user(self, user_id) -> Cart | None:
        """Return the user's cart, or None if they never had one."""
        carts = self._dao.query.filter(user_id=str(user_id)).all().items
        return carts[0] if carts else None

    def for_user(self, user_id) -> Cart:
        """Return the user's cart, creating and persisting an empty one on first use."""
        cart = self.find_by_user(user_id)
        if cart is None:
            cart = Cart.create(user_id=str(user_id))
            self.add(cart)
        return cart
