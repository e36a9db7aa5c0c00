"""Order placement: line building, PlaceOrder command and handler.

``build_order_lines`` turns client-supplied items into priced lines. For
products in the catalogue the name, image and unit price always come from
the catalogue; the client's price is ignored. Items whose product is not in
the catalogue are only accepted when unlisted items are allowed.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import PLACEHOLDER_IMAGE, Product
from storefront.checkout.pricing import calculate_pricing
from storefront.domain import storefront
from storefront.order.numbering import next_order_number
from storefront.order.order import Address, Order, PaymentMethod

logger = structlog.get_logger(__name__)

_PAYMENT_METHOD_ALIASES = {"cod": PaymentMethod.CASH_ON_DELIVERY.value}
_ADDRESS_ALIASES = {
    "address": "street",
    "zipCode": "zip_code",
    "postalCode": "zip_code",
    "postal_code": "zip_code",
}
_ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country", "phone")
UNSPECIFIED_STATE = "Not Specified"
_MAX_NUMBER_ATTEMPTS = 5


def normalize_payment_method(value):
    """Map client payment method names onto PaymentMethod values."""
    if not value:
        raise ValidationError({"payment_method": ["Payment method is required"]})
    method = _PAYMENT_METHOD_ALIASES.get(value, value)
    if method not in {m.value for m in PaymentMethod}:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {value}"]})
    return method


def normalize_address(data):
    """Return an address dict with canonical keys, or None when no address was given.

    Clients that never collect a state get ``UNSPECIFIED_STATE``.
    """
    if not data:
        return None
    address = {}
    for key, value in data.items():
        canonical = _ADDRESS_ALIASES.get(key, key)
        if canonical in _ADDRESS_FIELDS and value not in (None, ""):
            address.setdefault(canonical, value)
    address.setdefault("state", UNSPECIFIED_STATE)
    return address


def check_address(address, field):
    """Raise ValidationError unless ``address`` has every required Address field."""
    if not address:
        raise ValidationError({field: [f"{field.replace('_', ' ').capitalize()} is required"]})
    try:
        Address(**address)
    except ValidationError as exc:
        raise ValidationError({f"{field}.{key}": value for key, value in exc.messages.items()}) from None
    return address


def _item_quantity(item):
    try:
        quantity = int(item.get("quantity", 1))
    except (TypeError, ValueError):
        quantity = 0
    if quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})
    return quantity


def build_order_lines(items, allow_unlisted=False):
    """Validate client items against the catalogue and return priced order lines.

    Each returned line is a dict with product_id, name, image, unit_price,
    quantity, selected_variant and catalogued.
    """
    if not items:
        raise ValidationError({"items": ["No order items"]})

    repo = current_domain.repository_for(Product)
    lines = []
    for item in items:
        product_id = item.get("product_id") or item.get("product") or item.get("id")
        if not product_id:
            raise ValidationError({"product_id": ["Each item needs a product"]})
        quantity = _item_quantity(item)
        variant = item.get("selected_variant") or None

        try:
            product = repo.get(str(product_id))
        except ObjectNotFoundError:
            if not allow_unlisted:
                raise ObjectNotFoundError({"product": [f"Product not found: {product_id}"]}) from None
            lines.append(_unlisted_line(product_id, item, quantity, variant))
            continue

        product.ensure_stock(quantity)
        lines.append(
            {
                "product_id": str(product.id),
                "name": product.name,
                "image": product.primary_image or PLACEHOLDER_IMAGE,
                "unit_price": product.price,
                "quantity": quantity,
                "selected_variant": variant,
                "catalogued": True,
            }
        )
    return lines


def _unlisted_line(product_id, item, quantity, variant):
    name = item.get("name")
    price = item.get("price")
    if not name or price is None:
        raise ValidationError({"items": [f"Unlisted item {product_id} needs a name and a price"]})
    try:
        unit_price = float(price)
    except (TypeError, ValueError):
        raise ValidationError({"price": [f"Invalid price for {product_id}"]}) from None
    if unit_price < 0:
        raise ValidationError({"price": ["Price cannot be negative"]})

    logger.info("Accepting unlisted order item", product_id=str(product_id), name=name)
    return {
        "product_id": str(product_id),
        "name": name,
        "image": item.get("image") or PLACEHOLDER_IMAGE,
        "unit_price": unit_price,
        "quantity": quantity,
        "selected_variant": variant,
        "catalogued": False,
    }


@storefront.command(part_of="Order")
class PlaceOrder:
    """Persist an order from lines already checked by ``build_order_lines``."""

    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of order line dicts
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict
    payment_method = String(required=True, max_length=50)
    payment_result = Text()  # JSON: gateway result dict
    coupon_code = String(max_length=100)
    notes = Text()


def _unique_order_number(repo):
    for _ in range(_MAX_NUMBER_ATTEMPTS):
        number = next_order_number()
        if repo.find_by_number(number) is None:
            return number
        logger.warning("Order number collision", order_number=number)
    raise ValidationError({"order_number": ["Could not allocate a unique order number"]})


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = json.loads(command.items)
        payment_result = json.loads(command.payment_result) if command.payment_result else None
        pricing = calculate_pricing(lines, payment_method=command.payment_method)

        repo = current_domain.repository_for(Order)
        order = Order.place(
            user_id=command.user_id,
            order_number=_unique_order_number(repo),
            items_data=lines,
            shipping_address=json.loads(command.shipping_address),
            billing_address=json.loads(command.billing_address) if command.billing_address else None,
            payment_method=command.payment_method,
            pricing=pricing.as_dict(),
            payment_result=payment_result,
            coupon_code=command.coupon_code,
            notes=command.notes,
        )
        repo.add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            user_id=str(command.user_id),
            total_price=order.total_price,
            order_status=order.order_status,
            payment_status=order.payment_status,
        )
        return str(order.id)
