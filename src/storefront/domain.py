"""Storefront bounded context: carts, checkout, orders and stock.

Handles the shopping cart (CQRS), checkout pricing, order placement and the
order status lifecycle, plus the catalogue stock counters that orders
reserve and restore.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

storefront = Domain(name="storefront")
