"""Inventory adjuster: reserve and restore product stock for orders.

Reservation is all-or-nothing: every product is checked before any counter
is written, and the whole sequence runs while the affected products are
locked. Restoration is the exact inverse and never fails on stock levels.

Lines are dicts with ``product_id`` and ``quantity``. Several lines for the
same product (different variants) are summed before checking.
"""

import json
from collections import defaultdict

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.inventory.locks import stock_locks

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class ReserveStock:
    """Withdraw stock for every line, or for none of them."""

    lines = Text(required=True)  # JSON: list of {product_id, quantity}
    reference = String(max_length=50)


@storefront.command(part_of="Product")
class RestoreStock:
    """Put previously reserved stock back on the shelf."""

    lines = Text(required=True)  # JSON: list of {product_id, quantity}
    reference = String(max_length=50)


def _quantities_by_product(lines):
    totals = defaultdict(int)
    for line in lines:
        totals[str(line["product_id"])] += int(line["quantity"])
    return dict(totals)


def withdraw_lines(lines, reference=None):
    """Check and withdraw stock for all lines. Callers must hold the product locks."""
    repo = current_domain.repository_for(Product)
    quantities = _quantities_by_product(lines)

    products = {}
    for product_id, quantity in quantities.items():
        product = repo.get(product_id)
        product.ensure_stock(quantity)
        products[product_id] = product

    for product_id, quantity in quantities.items():
        product = products[product_id]
        product.withdraw(quantity, reference=reference)
        repo.add(product)

    logger.info(
        "Stock reserved",
        reference=reference,
        products=len(products),
        units=sum(quantities.values()),
    )
    return quantities


def replenish_lines(lines, reference=None):
    """Return stock for all lines. Products no longer in the catalogue are skipped."""
    repo = current_domain.repository_for(Product)
    restored = {}

    for product_id, quantity in _quantities_by_product(lines).items():
        try:
            product = repo.get(product_id)
        except ObjectNotFoundError:
            logger.warning(
                "Skipping stock restore for missing product",
                product_id=product_id,
                reference=reference,
            )
            continue

        product.replenish(quantity, reference=reference)
        repo.add(product)
        restored[product_id] = quantity

        if product.sold_count < 0:
            logger.warning(
                "Sold count went negative after restore",
                product_id=product_id,
                sold_count=product.sold_count,
                reference=reference,
            )

    logger.info("Stock restored", reference=reference, products=len(restored))
    return restored


@storefront.command_handler(part_of=Product)
class StockAdjustmentHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        return withdraw_lines(json.loads(command.lines), reference=command.reference)

    @handle(RestoreStock)
    def restore_stock(self, command):
        return replenish_lines(json.loads(command.lines), reference=command.reference)


def reserve(lines, reference=None):
    """Reserve stock for ``lines`` while holding the locks of every product involved."""
    if not lines:
        return {}
    with stock_locks.hold(line["product_id"] for line in lines):
        return current_domain.process(
            ReserveStock(lines=json.dumps(lines), reference=reference),
            asynchronous=False,
        )


def restore(lines, reference=None):
    """Restore stock for ``lines`` while holding the locks of every product involved."""
    if not lines:
        return {}
    with stock_locks.hold(line["product_id"] for line in lines):
        return current_domain.process(
            RestoreStock(lines=json.dumps(lines), reference=reference),
            asynchronous=False,
        )
