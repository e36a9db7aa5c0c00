"""Checkout saga: turn validated lines into a persisted order.

Steps, run synchronously in order:
    1. Build and validate the order lines against the catalogue.
    2. Reserve stock for catalogued lines (all-or-nothing, under product locks).
    3. Persist the order. If this fails the reservation is given back and
       the original error is re-raised.
    4. Clear the customer's cart (checkout only). A failure here does not
       undo the order; it is logged and reported as ``cart_cleared=False``.
"""

import json
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from storefront.cart.management import ClearCart
from storefront.config import get_settings
from storefront.inventory import adjustment
from storefront.order.order import Order
from storefront.order.placement import (
    PlaceOrder,
    build_order_lines,
    check_address,
    normalize_address,
    normalize_payment_method,
)

logger = structlog.get_logger(__name__)


@dataclass
class CheckoutResult:
    order: Order
    cart_cleared: bool | None = None


def place_order(
    user_id,
    items,
    shipping_address,
    payment_method,
    billing_address=None,
    payment_result=None,
    coupon_code=None,
    notes=None,
    allow_unlisted=None,
    clear_cart=False,
):
    """Run the checkout saga and return a CheckoutResult.

    ``allow_unlisted`` defaults to the configured allowance. ``clear_cart``
    empties the user's cart once the order is stored.
    """
    if allow_unlisted is None:
        allow_unlisted = get_settings().allow_unlisted_items

    method = normalize_payment_method(payment_method)
    shipping = check_address(normalize_address(shipping_address), "shipping_address")
    billing = normalize_address(billing_address)
    billing = check_address(billing, "billing_address") if billing else shipping
    lines = build_order_lines(items, allow_unlisted=allow_unlisted)

    # Order numbers are not known yet, so the reservation is tagged by user
    reference = f"checkout:{user_id}"
    stock_lines = [
        {"product_id": line["product_id"], "quantity": line["quantity"]} for line in lines if line["catalogued"]
    ]
    adjustment.reserve(stock_lines, reference=reference)

    try:
        order_id = current_domain.process(
            PlaceOrder(
                user_id=str(user_id),
                items=json.dumps(lines),
                shipping_address=json.dumps(shipping),
                billing_address=json.dumps(billing),
                payment_method=method,
                payment_result=json.dumps(payment_result) if payment_result else None,
                coupon_code=coupon_code,
                notes=notes,
            ),
            asynchronous=False,
        )
    except Exception:
        logger.warning("Order placement failed, releasing reserved stock", user_id=str(user_id))
        adjustment.restore(stock_lines, reference=reference)
        raise

    order = current_domain.repository_for(Order).get(order_id)
    result = CheckoutResult(order=order)

    if clear_cart:
        try:
            current_domain.process(ClearCart(user_id=str(user_id)), asynchronous=False)
            result.cart_cleared = True
        except Exception as exc:
            logger.error(
                "Failed to clear cart after checkout",
                user_id=str(user_id),
                order_number=order.order_number,
                error=str(exc),
            )
            result.cart_cleared = False

    return result
