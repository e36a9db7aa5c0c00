"""Order cancellation: command, handler and the locked entry point.

Cancelling puts the stock of catalogued lines back in the same unit of work
that marks the order cancelled, so the two are never out of step.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.adjustment import replenish_lines
from storefront.inventory.locks import stock_locks
from storefront.order.order import Order


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


def restock_cancelled(order):
    """Return the stock of a just-cancelled order. Callers must hold the product locks."""
    lines = order.catalogued_lines
    if lines:
        replenish_lines(lines, reference=order.order_number)


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(reason=command.reason)
        restock_cancelled(order)
        repo.add(order)


def cancel_order(order_id, reason=None):
    """Cancel an order while holding the locks of the products it restocks."""
    order = current_domain.repository_for(Order).get(order_id)
    with stock_locks.hold(line["product_id"] for line in order.catalogued_lines):
        current_domain.process(
            CancelOrder(order_id=str(order_id), reason=reason),
            asynchronous=False,
        )
