"""Whole-cart operations: clear and bulk sync."""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Cart")
class ClearCart:
    user_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class SyncCart:
    """Replace the cart with a client-side copy, keeping only lines that can be fulfilled."""

    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id | id, quantity, selected_variant}


def _valid_quantity(value):
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        return None
    return quantity if quantity > 0 else None


def merge_sync_lines(items):
    """Collapse incoming lines by ``(product_id, selected_variant)``, dropping malformed ones."""
    merged = {}
    for raw in items:
        if not isinstance(raw, dict):
            continue
        product_id = raw.get("product_id") or raw.get("productId") or raw.get("id")
        quantity = _valid_quantity(raw.get("quantity"))
        if not product_id or quantity is None:
            continue
        variant = raw.get("selected_variant") or raw.get("selectedVariant") or None
        key = (str(product_id), variant)
        merged[key] = merged.get(key, 0) + quantity
    return [
        {"product_id": product_id, "selected_variant": variant, "quantity": quantity}
        for (product_id, variant), quantity in merged.items()
    ]


@storefront.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        cart.clear()
        repo.add(cart)
        return str(cart.id)

    @handle(SyncCart)
    def sync_cart(self, command):
        incoming = json.loads(command.items) if isinstance(command.items, str) else command.items
        product_repo = current_domain.repository_for(Product)

        kept = []
        # Stock is checked per product across all of its variants
        demand = {}
        for line in merge_sync_lines(incoming):
            try:
                product = product_repo.get(line["product_id"])
            except ObjectNotFoundError:
                continue
            wanted = demand.get(line["product_id"], 0) + line["quantity"]
            if product.stock < wanted:
                continue
            demand[line["product_id"]] = wanted
            kept.append({**line, "unit_price": product.price})

        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        cart.replace_items(kept, items_received=len(incoming))
        repo.add(cart)

        if len(kept) < len(incoming):
            logger.info(
                "Dropped cart lines during sync",
                user_id=str(command.user_id),
                received=len(incoming),
                kept=len(kept),
            )
        return str(cart.id)
