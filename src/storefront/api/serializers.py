"""Serialize aggregates into the JSON shapes returned by the API."""

from storefront.catalogue.product import PLACEHOLDER_IMAGE


def _iso(value):
    return value.isoformat() if value else None


def _product_summary(product):
    if product is None:
        return None
    return {
        "id": str(product.id),
        "name": product.name,
        "price": product.price,
        "images": product.image_urls or [PLACEHOLDER_IMAGE],
        "stock": product.stock,
    }


def cart_to_dict(cart, products=None):
    """Cart with its lines. ``products`` maps product id to Product for line summaries."""
    products = products or {}
    return {
        "id": str(cart.id),
        "user": str(cart.user_id),
        "items": [
            {
                "id": str(item.id),
                "product": _product_summary(products.get(str(item.product_id))) or {"id": str(item.product_id)},
                "quantity": item.quantity,
                "selectedVariant": item.selected_variant,
                "price": item.unit_price,
                "addedAt": _iso(item.added_at),
            }
            for item in cart.items
        ],
        "totalItems": cart.total_items,
        "totalPrice": cart.total_price,
        "updatedAt": _iso(cart.updated_at),
    }


def pricing_to_dict(pricing):
    return {
        "itemsPrice": pricing.items_price,
        "taxPrice": pricing.tax_price,
        "shippingPrice": pricing.shipping_price,
        "codCharges": pricing.cod_charge,
        "discountAmount": pricing.discount_amount,
        "totalPrice": pricing.total_price,
    }


def _address_to_dict(address):
    if address is None:
        return None
    return {
        "street": address.street,
        "city": address.city,
        "state": address.state,
        "zipCode": address.zip_code,
        "country": address.country,
        "phone": address.phone,
    }


def order_to_dict(order, products=None, user=None):
    """Order with items, addresses and history.

    ``products`` populates catalogued lines with a product summary. ``user``
    is a dict describing the owner; defaults to just the id.
    """
    products = products or {}
    return {
        "id": str(order.id),
        "orderNumber": order.order_number,
        "user": user or {"id": str(order.user_id)},
        "items": [
            {
                "id": str(item.id),
                "product": _product_summary(products.get(str(item.product_id))) if item.catalogued else None,
                "productId": str(item.product_id),
                "name": item.name,
                "image": item.image,
                "price": item.unit_price,
                "quantity": item.quantity,
                "selectedVariant": item.selected_variant,
                "catalogued": item.catalogued,
            }
            for item in order.items
        ],
        "shippingAddress": _address_to_dict(order.shipping_address),
        "billingAddress": _address_to_dict(order.billing_address),
        "paymentMethod": order.payment_method,
        "paymentStatus": order.payment_status,
        "paymentReference": order.payment_reference,
        "paidAt": _iso(order.paid_at),
        "itemsPrice": order.items_price,
        "taxPrice": order.tax_price,
        "shippingPrice": order.shipping_price,
        "discountAmount": order.discount_amount,
        "totalPrice": order.total_price,
        "totalItems": order.total_items,
        "orderStatus": order.order_status,
        "statusHistory": [
            {"status": entry.status, "timestamp": _iso(entry.timestamp), "note": entry.note}
            for entry in sorted(order.status_history, key=lambda entry: entry.timestamp)
        ],
        "trackingNumber": order.tracking_number,
        "carrier": order.carrier,
        "deliveredAt": _iso(order.delivered_at),
        "cancelledAt": _iso(order.cancelled_at),
        "cancellationReason": order.cancellation_reason,
        "couponCode": order.coupon_code,
        "notes": order.notes,
        "refundAmount": order.refund_amount,
        "refundReason": order.refund_reason,
        "refundedAt": _iso(order.refunded_at),
        "canBeCancelled": order.can_be_cancelled(),
        "canBeReturned": order.can_be_returned(),
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }
