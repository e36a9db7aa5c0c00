"""Pre-flight checkout session.

Prices the current cart and reports lines that cannot be fulfilled right
now. The result is advisory: stock is re-checked when the order is placed.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.checkout.pricing import calculate_pricing
from storefront.shared.errors import OutOfStock


def load_products(product_ids):
    """Fetch the catalogue products for ``product_ids``, skipping unknown ids."""
    repo = current_domain.repository_for(Product)
    products = {}
    for product_id in {str(pid) for pid in product_ids}:
        try:
            products[product_id] = repo.get(product_id)
        except ObjectNotFoundError:
            continue
    return products


def check_availability(cart, products):
    """Return the cart lines whose product is gone or short on stock.

    Args:
        cart: The Cart aggregate.
        products: Mapping of product id to Product.
    """
    unavailable = []
    for item in cart.items:
        product = products.get(str(item.product_id))
        available = product.stock if product else 0
        if product is None or available < item.quantity:
            unavailable.append(
                {
                    "product_id": str(item.product_id),
                    "name": product.name if product else None,
                    "requested": item.quantity,
                    "available": available,
                }
            )
    return unavailable


def checkout_session(user_id, payment_method=None):
    """Build the checkout summary for the user's cart.

    Returns a dict with the ``cart`` aggregate, its ``pricing`` and the
    ``products`` loaded for its lines.
    Raises ValidationError for an empty cart and OutOfStock when any line
    cannot be fulfilled.
    """
    cart = current_domain.repository_for(Cart).for_user(user_id)
    if cart.is_empty:
        raise ValidationError({"cart": ["Cart is empty"]})

    products = load_products(item.product_id for item in cart.items)
    unavailable = check_availability(cart, products)
    if unavailable:
        raise OutOfStock(unavailable)

    pricing = calculate_pricing(
        [{"unit_price": item.unit_price, "quantity": item.quantity} for item in cart.items],
        payment_method=payment_method,
    )
    return {"cart": cart, "pricing": pricing, "products": products}
